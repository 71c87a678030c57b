"""One render cycle: classify, compile, mount, attach pan/zoom, report.

All session state lives on an explicit ``RenderContext``; the functions here
are its only writers. Compile jobs go through the context's job runner and
their results come back on the main thread, where they are checked against
the current cycle and the placeholders still mounted before being applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Callable

from .channel import MessagePort, ViewerChannel
from .classifier import RenderMode, SourceHint, classify, hint_from_filename
from .compiler import DiagramCompiler
from .definition import VectorResult, compile_with_repair
from .errors import EmptyInputError, ReadError, SvgError, ViewerUnavailableError
from .markup import BlockKind, DocumentBlock, compile_document, diagram_error_notice, render_plain, split_blocks
from .samples import SAMPLES
from .sanitize import is_blank, sanitize
from .surface import DocumentSurface, InteractionLayer, PanZoomHandle, StatusLine, refit
from .svg import strip_size_attributes
from .workers import InlineJobRunner, JobRunner

logger = logging.getLogger(__name__)

VIEWER_BLOCKED = "Popup blocked. Allow popups to open the full viewer."

ViewerOpener = Callable[[], "MessagePort | None"]


class RenderState(str, Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"
    DIAGRAM_RENDERING = "diagram-rendering"
    MARKUP_RENDERING = "markup-rendering"
    MOUNTED = "mounted"
    ERROR = "error"


@dataclass
class RenderCycle:
    number: int
    mode: RenderMode
    blocks: tuple[DocumentBlock, ...] = ()
    state: RenderState = RenderState.CLASSIFYING
    outstanding: int = 0
    failures: int = 0
    results: dict[str, str | None] = field(default_factory=dict)
    viewer_blocked: bool = False

    @property
    def diagram_ids(self) -> list[str]:
        return [block.block_id for block in self.blocks if block.kind is BlockKind.DIAGRAM and block.block_id]


@dataclass
class RenderContext:
    surface: DocumentSurface
    compiler: DiagramCompiler
    runner: JobRunner = field(default_factory=InlineJobRunner)
    status: StatusLine = field(default_factory=StatusLine)
    interaction: InteractionLayer | None = None
    channel: ViewerChannel = field(default_factory=ViewerChannel)
    open_viewer: ViewerOpener | None = None
    panzoom: PanZoomHandle | None = None
    state: RenderState = RenderState.IDLE
    cycle: RenderCycle | None = None
    cycle_count: int = 0


@dataclass(frozen=True)
class LoadedSource:
    name: str
    text: str
    hint: SourceHint | None


def _set_state(context: RenderContext, cycle: RenderCycle, state: RenderState) -> None:
    cycle.state = state
    context.state = state


def _finish(context: RenderContext, cycle: RenderCycle, state: RenderState) -> None:
    _set_state(context, cycle, state)
    context.state = RenderState.IDLE


def _with_warning(message: str, cycle: RenderCycle) -> str:
    return f"{message} ({VIEWER_BLOCKED})" if cycle.viewer_blocked else message


def _destroy_panzoom(context: RenderContext) -> None:
    if context.panzoom is not None:
        context.panzoom.destroy()
        context.panzoom = None


def _attach_panzoom(context: RenderContext) -> None:
    _destroy_panzoom(context)
    if context.interaction is None:
        return
    context.panzoom = context.interaction.attach(context.surface)
    refit(context.panzoom)


def _open_viewer(context: RenderContext, cycle: RenderCycle) -> None:
    """Open the detached viewer now, while still inside the user's action."""
    if context.channel.is_live or context.open_viewer is None:
        return
    try:
        handle = context.open_viewer()
    except ViewerUnavailableError as exc:
        logger.warning("Viewer unavailable: %s", exc)
        handle = None
    if handle is None:
        cycle.viewer_blocked = True
        context.status.set(VIEWER_BLOCKED, error=True)
        return
    context.channel.bind(handle)


def _mountable_svg(result: VectorResult) -> tuple[str | None, str | None]:
    """Return ``(svg, error)`` with width/height stripped from the root."""
    if not result.ok:
        return None, result.error or "unknown error"
    try:
        return strip_size_attributes(result.svg), None
    except SvgError as exc:
        return None, str(exc)


def render(
    context: RenderContext,
    raw: str,
    hint: SourceHint | None = None,
    *,
    open_viewer: bool = False,
) -> RenderCycle | None:
    """Run one render cycle for ``raw``; returns None when input is empty."""
    sanitized = sanitize(raw)
    if is_blank(sanitized):
        context.status.set(str(EmptyInputError()), error=True)
        return None

    _destroy_panzoom(context)
    context.surface.clear()
    context.cycle_count += 1
    context.state = RenderState.CLASSIFYING
    classification = classify(sanitized, hint)
    cycle = RenderCycle(context.cycle_count, classification.mode)
    context.cycle = cycle

    if classification.mode is RenderMode.PLAIN:
        context.surface.mount(render_plain(sanitized))
        context.status.set("Rendered as plain text (no Mermaid diagram detected).")
        _finish(context, cycle, RenderState.MOUNTED)
        return cycle

    if classification.mode is RenderMode.MARKUP:
        _render_markup(context, cycle, sanitized, open_viewer)
        return cycle

    if open_viewer:
        _open_viewer(context, cycle)
    _set_state(context, cycle, RenderState.DIAGRAM_RENDERING)
    if not cycle.viewer_blocked:
        context.status.set("Rendering...")
    diagram_id = f"diagram-{cycle.number}"
    context.runner.submit(
        partial(compile_with_repair, context.compiler, diagram_id, classification.diagram_source or ""),
        partial(_on_diagram_done, context, cycle),
    )
    return cycle


def _on_diagram_done(context: RenderContext, cycle: RenderCycle, result: VectorResult) -> None:
    if context.cycle is not cycle:
        logger.debug("Dropping stale diagram result from cycle %d", cycle.number)
        return
    svg, error = _mountable_svg(result)
    if svg is None:
        context.surface.clear()
        context.status.set(f"Render failed: {error}", error=True)
        # A failed render must not leave mismatched content in the viewer.
        context.channel.close()
        _finish(context, cycle, RenderState.ERROR)
        return

    context.surface.mount_svg(svg)
    _attach_panzoom(context)
    context.status.set(_with_warning("Rendered. Scroll to zoom, drag to pan.", cycle))
    if context.channel.is_live:
        context.channel.send(result.svg)
    _finish(context, cycle, RenderState.MOUNTED)


def _render_markup(context: RenderContext, cycle: RenderCycle, sanitized: str, open_viewer: bool) -> None:
    blocks = split_blocks(sanitized, id_prefix=f"diagram-{cycle.number}")
    cycle.blocks = blocks
    diagrams = [block for block in blocks if block.kind is BlockKind.DIAGRAM]
    _set_state(context, cycle, RenderState.MARKUP_RENDERING)
    if not diagrams:
        context.surface.mount(compile_document(blocks))
        context.status.set("Rendered markdown.")
        _finish(context, cycle, RenderState.MOUNTED)
        return

    if open_viewer:
        _open_viewer(context, cycle)
    context.surface.mount(compile_document(blocks), targets=tuple(cycle.diagram_ids))
    _set_state(context, cycle, RenderState.MOUNTED)
    if not cycle.viewer_blocked:
        context.status.set(f"Rendering {len(diagrams)} diagram(s)...")
    cycle.outstanding = len(diagrams)
    for block in diagrams:
        context.runner.submit(
            partial(compile_with_repair, context.compiler, block.block_id, block.content),
            partial(_on_block_done, context, cycle, block),
        )


def _on_block_done(context: RenderContext, cycle: RenderCycle, block: DocumentBlock, result: VectorResult) -> None:
    cycle.outstanding -= 1
    svg, error = _mountable_svg(result)
    # The viewer gets the compiler's own markup, as in diagram mode.
    cycle.results[block.block_id] = result.svg if svg is not None else None
    if svg is None:
        cycle.failures += 1
        context.surface.fill(block.block_id, diagram_error_notice(error))
    else:
        context.surface.fill(block.block_id, svg)
    if cycle.outstanding == 0:
        _finish_markup(context, cycle)


def _finish_markup(context: RenderContext, cycle: RenderCycle) -> None:
    if context.cycle is not cycle:
        logger.debug("Cycle %d finished after being superseded", cycle.number)
        return
    total = len(cycle.diagram_ids)
    if cycle.failures:
        context.status.set(
            _with_warning(f"Rendered with {cycle.failures} of {total} diagram(s) failed.", cycle),
            error=True,
        )
    else:
        context.status.set(_with_warning(f"Rendered {total} diagram(s).", cycle))

    first_svg = next((cycle.results[i] for i in cycle.diagram_ids if cycle.results.get(i)), None)
    if context.channel.is_live:
        if first_svg is not None:
            context.channel.send(first_svg)
        else:
            context.channel.close()
    context.state = RenderState.IDLE


def reset_view(context: RenderContext) -> None:
    if context.panzoom is not None:
        context.panzoom.reset()
        context.panzoom.fit()
        context.panzoom.center()


def resize_view(context: RenderContext) -> None:
    if context.panzoom is not None:
        refit(context.panzoom)


def read_source(path: Path) -> LoadedSource:
    """Read a file as UTF-8 text and derive a source hint from its name."""
    path = Path(path)
    try:
        text = path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ReadError(f"Failed to read file: {exc}") from exc
    return LoadedSource(path.name, text, hint_from_filename(path.name))


def load_file(
    context: RenderContext,
    path: Path,
    on_loaded: Callable[[LoadedSource], None] | None = None,
) -> LoadedSource | None:
    """Load a file and render it; the status line reports read failures."""
    context.status.set(f"Loading {Path(path).name}...")
    try:
        loaded = read_source(path)
    except ReadError as exc:
        context.status.set(str(exc), error=True)
        return None
    context.status.set(f"Loaded {loaded.name}. Ready to render.")
    if on_loaded is not None:
        on_loaded(loaded)
    render(context, loaded.text, loaded.hint, open_viewer=False)
    return loaded


def load_sample(
    context: RenderContext,
    key: str,
    on_loaded: Callable[[LoadedSource], None] | None = None,
) -> LoadedSource | None:
    sample = SAMPLES.get(key)
    if sample is None:
        return None
    loaded = LoadedSource(sample.label, sample.text, sample.hint)
    if on_loaded is not None:
        on_loaded(loaded)
    render(context, sample.text, sample.hint, open_viewer=False)
    return loaded
