"""Mount targets and the status line."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from .markup import diagram_placeholder

logger = logging.getLogger(__name__)


class PanZoomHandle(Protocol):
    def fit(self) -> None: ...

    def center(self) -> None: ...

    def resize(self) -> None: ...

    def reset(self) -> None: ...

    def destroy(self) -> None: ...


class InteractionLayer(Protocol):
    def attach(self, surface: "DocumentSurface") -> PanZoomHandle: ...


def refit(handle: PanZoomHandle) -> None:
    handle.resize()
    handle.fit()
    handle.center()


@dataclass
class StatusLine:
    """A single human-readable status message with an error flag."""

    message: str = ""
    is_error: bool = False
    listener: Callable[[str, bool], None] | None = None

    def set(self, message: str, error: bool = False) -> None:
        self.message = message
        self.is_error = error
        if self.listener is not None:
            self.listener(message, error)


class DocumentSurface:
    """In-memory model of one output area.

    Holds the mounted fragment, the placeholder targets still present in it,
    and the vector graphic when a single diagram is shown. Subclasses mirror
    the changes into a real view through the ``_on_*`` hooks.
    """

    def __init__(self) -> None:
        self.fragment = ""
        self.svg: str | None = None
        self._targets: dict[str, str | None] = {}

    def clear(self) -> None:
        self.fragment = ""
        self.svg = None
        self._targets = {}
        self._on_clear()

    def mount(self, fragment: str, targets: tuple[str, ...] = ()) -> None:
        self.fragment = fragment
        self.svg = None
        self._targets = {target: None for target in targets}
        self._on_mount(self.render_html())

    def mount_svg(self, svg: str) -> None:
        self.fragment = f'<div class="diagram-root">{svg}</div>'
        self.svg = svg
        self._targets = {}
        self._on_mount(self.render_html())

    def has_target(self, target_id: str) -> bool:
        return target_id in self._targets

    def fill(self, target_id: str, markup: str) -> bool:
        """Replace a placeholder's content; False if the target is gone."""
        if target_id not in self._targets:
            logger.debug("Dropping result for missing target %s", target_id)
            return False
        self._targets[target_id] = markup
        self._on_fill(target_id, markup)
        return True

    def filled(self, target_id: str) -> str | None:
        return self._targets.get(target_id)

    def render_html(self) -> str:
        html_text = self.fragment
        for target_id, markup in self._targets.items():
            if markup is None:
                continue
            html_text = html_text.replace(
                diagram_placeholder(target_id),
                f'<div class="diagram-block" id="{target_id}">{markup}</div>',
            )
        return html_text

    def _on_clear(self) -> None:
        pass

    def _on_mount(self, html_text: str) -> None:
        pass

    def _on_fill(self, target_id: str, markup: str) -> None:
        pass
