"""Shared test doubles: fake compiler, window ports, pan/zoom layer, runners."""

from __future__ import annotations

from mermaidpad.errors import DiagramCompileError

SIMPLE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="200" height="100" '
    'viewBox="0 0 200 100" style="max-width: 200px;"><rect width="10" height="10"/></svg>'
)


class FakeCompiler:
    """Returns canned SVG; sources containing any ``fail_on`` marker are rejected."""

    def __init__(self, svg: str = SIMPLE_SVG, fail_on: tuple[str, ...] = (), error: str = "Parse error on line 2"):
        self.svg = svg
        self.fail_on = fail_on
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def compile(self, diagram_id: str, source: str) -> str:
        self.calls.append((diagram_id, source))
        if any(marker in source for marker in self.fail_on):
            raise DiagramCompileError(self.error, diagram_id)
        return self.svg


class FakePort:
    """Window handle that records posted messages."""

    def __init__(self):
        self.closed = False
        self.posted: list[dict] = []

    def post_message(self, message: dict) -> None:
        self.posted.append(dict(message))

    def close(self) -> None:
        self.closed = True


class FakePanZoom:
    def __init__(self):
        self.calls: list[str] = []
        self.destroyed = False

    def fit(self):
        self.calls.append("fit")

    def center(self):
        self.calls.append("center")

    def resize(self):
        self.calls.append("resize")

    def reset(self):
        self.calls.append("reset")

    def destroy(self):
        self.destroyed = True


class FakeInteraction:
    def __init__(self):
        self.handles: list[FakePanZoom] = []

    def attach(self, surface):
        handle = FakePanZoom()
        self.handles.append(handle)
        return handle


class DeferredJobRunner:
    """Queue jobs until ``run_next``/``run_all`` so tests control completion order."""

    def __init__(self):
        self.queue: list[tuple] = []

    def submit(self, job, on_done) -> None:
        self.queue.append((job, on_done))

    def run_next(self, index: int = 0) -> None:
        job, on_done = self.queue.pop(index)
        on_done(job())

    def run_all(self) -> None:
        while self.queue:
            self.run_next()


class FakeRasterizer:
    def __init__(self, png: bytes = b"\x89PNG fake", error: Exception | None = None):
        self.png = png
        self.error = error
        self.sizes: list[tuple[int, int]] = []

    def rasterize(self, svg_text: str, width: int, height: int) -> bytes:
        self.sizes.append((width, height))
        if self.error is not None:
            raise self.error
        return self.png
