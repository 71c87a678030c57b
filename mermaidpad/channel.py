"""Message protocol between the primary window and the detached viewer.

The primary side keeps at most one live session: a handle to the viewer,
whether the viewer has announced readiness, and a single pending payload.
Sending before readiness replaces the pending payload; readiness flushes it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

from .errors import ExportError, SvgError
from .export import ExportResult, ExportSink, Rasterizer, export_raster
from .surface import DocumentSurface, InteractionLayer, PanZoomHandle, StatusLine, refit
from .svg import normalize_for_viewport

logger = logging.getLogger(__name__)

POPUP_READY = "popup-ready"
RENDER_SVG = "render-svg"


class MessagePort(Protocol):
    """Handle to another window that messages can be posted into."""

    @property
    def closed(self) -> bool: ...

    def post_message(self, message: dict[str, Any]) -> None: ...

    def close(self) -> None: ...


class ViewerChannel:
    """Primary-side session with the secondary viewer."""

    def __init__(self) -> None:
        self._handle: MessagePort | None = None
        self._ready = False
        self._pending: str | None = None
        self._ready_callbacks: list[Callable[[], None]] = []

    @property
    def handle(self) -> MessagePort | None:
        return self._handle

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def pending(self) -> str | None:
        return self._pending

    @property
    def is_live(self) -> bool:
        if self._handle is not None and self._handle.closed:
            self._discard()
        return self._handle is not None

    def bind(self, handle: MessagePort) -> None:
        """Start a new session with a freshly opened viewer."""
        if self._handle is not None and self._handle is not handle and not self._handle.closed:
            self._handle.close()
        self._handle = handle
        self._ready = False
        self._pending = None

    def on_ready(self, callback: Callable[[], None]) -> None:
        self._ready_callbacks.append(callback)

    def send(self, payload: str) -> None:
        """Deliver now if the viewer is ready, otherwise keep only this payload."""
        self._pending = payload
        if not self.is_live or not self._ready:
            return
        self._flush()

    def on_message(self, source: object, message: Any) -> None:
        if self._handle is None or source is not self._handle:
            logger.debug("Ignoring message from unknown source")
            return
        if not isinstance(message, dict) or message.get("type") != POPUP_READY:
            return
        self._ready = True
        for callback in list(self._ready_callbacks):
            callback()
        if self._pending is not None and self.is_live:
            self._flush()

    def close(self) -> None:
        if self._handle is not None and not self._handle.closed:
            self._handle.close()
        self._discard()

    def _flush(self) -> None:
        payload, self._pending = self._pending, None
        self._handle.post_message({"type": RENDER_SVG, "svg": payload})

    def _discard(self) -> None:
        self._handle = None
        self._ready = False
        self._pending = None


class SecondaryViewer:
    """Viewer-side logic: show the latest graphic full-viewport and export it."""

    def __init__(
        self,
        surface: DocumentSurface,
        interaction: InteractionLayer,
        opener: MessagePort,
        *,
        rasterizer: Rasterizer | None = None,
        sink: ExportSink | None = None,
        status: StatusLine | None = None,
    ) -> None:
        self.surface = surface
        self.interaction = interaction
        self.opener = opener
        self.rasterizer = rasterizer
        self.sink = sink
        self.status = status or StatusLine()
        self.panzoom: PanZoomHandle | None = None

    def start(self) -> None:
        """Announce readiness once the viewer has finished initializing."""
        if not self.opener.closed:
            self.opener.post_message({"type": POPUP_READY})

    def handle_message(self, message: Any) -> None:
        if not isinstance(message, dict) or message.get("type") != RENDER_SVG:
            return
        self.render_svg(message.get("svg") or "")

    def render_svg(self, markup: str) -> None:
        self._destroy_panzoom()
        self.surface.clear()
        try:
            normalized = normalize_for_viewport(markup)
        except SvgError:
            self.status.set("No SVG found to render.", error=True)
            return
        self.surface.mount_svg(normalized)
        self.panzoom = self.interaction.attach(self.surface)
        refit(self.panzoom)
        self.status.set("Scroll to zoom, drag to pan")

    def resize(self) -> None:
        if self.panzoom is not None:
            refit(self.panzoom)

    def save(self, rendered_size: tuple[float, float] | None = None) -> ExportResult | None:
        if not self.surface.svg:
            self.status.set("No SVG to save.", error=True)
            return None
        if self.rasterizer is None or self.sink is None:
            self.status.set("Export is not available.", error=True)
            return None
        self.status.set("Preparing PNG...")
        try:
            result = export_raster(self.surface.svg, self.rasterizer, self.sink, rendered_size)
        except ExportError as exc:
            self.status.set(str(exc), error=True)
            return None
        if result is None:
            self.status.set("Save cancelled.")
            return None
        self.status.set(result.message, error=result.is_error)
        return result

    def _destroy_panzoom(self) -> None:
        if self.panzoom is not None:
            self.panzoom.destroy()
            self.panzoom = None
