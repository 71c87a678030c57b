"""Rasterize the displayed diagram to PNG, falling back to the SVG source."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

from PySide6.QtCore import QBuffer, QByteArray, QEventLoop, QIODevice, QObject, QRectF, QRunnable, QThreadPool, QTimer, Signal, Slot
from PySide6.QtGui import QColor, QImage, QPainter
from PySide6.QtSvg import QSvgRenderer

from .config import DEFAULT_EXPORT_SIZE, EXPORT_BACKGROUND, PNG_FILENAME, SVG_FILENAME
from .errors import ExportError, SvgError
from .svg import root_tag, strip_external_resources, view_box

logger = logging.getLogger(__name__)


class Rasterizer(Protocol):
    def rasterize(self, svg_text: str, width: int, height: int) -> bytes:
        """Return PNG bytes or raise ExportError."""
        ...


@dataclass(frozen=True)
class ExportResult:
    path: Path
    format: str
    via: str
    message: str
    is_error: bool = False


def prepare_for_raster(svg_text: str) -> str:
    """Copy of the markup without imported stylesheets or remote images."""
    try:
        root_tag(svg_text)
    except SvgError as exc:
        raise ExportError(str(exc)) from exc
    return strip_external_resources(svg_text)


def raster_size(svg_text: str, rendered_size: tuple[float, float] | None = None) -> tuple[int, int]:
    """Canvas size: the viewBox, then the rendered box, then a fixed default."""
    box = view_box(svg_text)
    if box is not None:
        width, height = box[2], box[3]
    elif rendered_size and rendered_size[0] > 0 and rendered_size[1] > 0:
        width, height = rendered_size
    else:
        width, height = DEFAULT_EXPORT_SIZE
    return max(1, round(width)), max(1, round(height))


def render_png_bytes(svg_text: str, width: int, height: int, background: str = EXPORT_BACKGROUND) -> bytes:
    renderer = QSvgRenderer(QByteArray(svg_text.encode("utf-8")))
    if not renderer.isValid():
        raise ExportError("PNG export failed to load SVG.")
    image = QImage(width, height, QImage.Format.Format_ARGB32)
    image.fill(QColor(background))
    painter = QPainter(image)
    try:
        renderer.render(painter, QRectF(0, 0, width, height))
    finally:
        painter.end()
    buffer = QBuffer()
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    if not image.save(buffer, "PNG"):
        raise ExportError("PNG export failed.")
    return bytes(buffer.data())


class RasterWorkerSignals(QObject):
    """Signals emitted by background rasterization workers."""

    finished = Signal(object, str)


class RasterWorker(QRunnable):
    """Draw one SVG onto an offscreen image in a worker thread."""

    def __init__(self, svg_text: str, width: int, height: int, background: str):
        super().__init__()
        self.svg_text = svg_text
        self.width = width
        self.height = height
        self.background = background
        self.signals = RasterWorkerSignals()

    def run(self) -> None:
        try:
            png = render_png_bytes(self.svg_text, self.width, self.height, self.background)
        except Exception as exc:
            self.signals.finished.emit(None, str(exc) or "PNG export failed.")
            return
        self.signals.finished.emit(png, "")


class _RasterReceiver(QObject):
    """Main-thread end of one rasterization; drops itself from ``pending`` once the worker reports."""

    def __init__(self, loop: QEventLoop, worker: RasterWorker, pending: set[_RasterReceiver]):
        super().__init__()
        self.loop = loop
        self.worker = worker
        self.pending = pending
        self.done = False
        self.png: bytes | None = None
        self.error = ""

    @Slot(object, str)
    def on_finished(self, png, error: str) -> None:
        self.done = True
        self.png = png
        self.error = error
        self.pending.discard(self)
        if self.loop.isRunning():
            self.loop.quit()


class QtSvgRasterizer:
    """Rasterize with QSvgRenderer, bounded by a timeout on a local event loop."""

    def __init__(self, background: str = EXPORT_BACKGROUND, timeout_ms: int = 5000, pool: QThreadPool | None = None):
        self.background = background
        self.timeout_ms = timeout_ms
        self._pool = pool or QThreadPool.globalInstance()
        self._pending: set[_RasterReceiver] = set()

    def rasterize(self, svg_text: str, width: int, height: int) -> bytes:
        loop = QEventLoop()
        worker = RasterWorker(svg_text, width, height, self.background)
        receiver = _RasterReceiver(loop, worker, self._pending)
        worker.signals.finished.connect(receiver.on_finished)
        self._pending.add(receiver)

        timeout_timer = QTimer()
        timeout_timer.setSingleShot(True)
        timeout_timer.timeout.connect(loop.quit)
        timeout_timer.start(max(1, int(self.timeout_ms)))
        self._pool.start(worker)
        loop.exec()
        timeout_timer.stop()

        if not receiver.done:
            raise ExportError("PNG render timed out.")
        if receiver.error or not receiver.png:
            raise ExportError(receiver.error or "PNG export failed.")
        return receiver.png


def unique_path(directory: Path, filename: str) -> Path:
    """``directory/filename``, or ``name (n).ext`` when that already exists."""
    candidate = directory / filename
    stem, suffix = candidate.stem, candidate.suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem} ({counter}){suffix}"
        counter += 1
    return candidate


class ExportSink:
    """Persist export bytes through a save picker, falling back to a download."""

    def __init__(self, download_dir: Path, picker: Callable[[str], Path | None] | None = None):
        self.download_dir = download_dir
        self.picker = picker

    def download(self, data: bytes, filename: str) -> Path:
        self.download_dir.mkdir(parents=True, exist_ok=True)
        target = unique_path(self.download_dir, filename)
        target.write_bytes(data)
        logger.info("Saved %s", target)
        return target

    def save(self, data: bytes, filename: str) -> tuple[Path, str] | None:
        """Return ``(path, via)``; None when the user cancelled the picker."""
        if self.picker is None:
            return self.download(data, filename), "download"
        try:
            target = self.picker(filename)
            if target is None:
                return None
            target.write_bytes(data)
        except Exception as exc:
            logger.warning("Save picker failed (%s); downloading instead", exc)
            return self.download(data, filename), "fallback"
        logger.info("Saved %s", target)
        return target, "picker"


def export_raster(
    svg_text: str,
    rasterizer: Rasterizer,
    sink: ExportSink,
    rendered_size: tuple[float, float] | None = None,
) -> ExportResult | None:
    """Export the graphic as PNG, or as the original SVG if rasterizing fails.

    Returns None when the user cancelled the save picker. Raises ExportError
    only when the SVG fallback itself cannot be written.
    """
    try:
        prepared = prepare_for_raster(svg_text)
        width, height = raster_size(prepared, rendered_size)
        png = rasterizer.rasterize(prepared, width, height)
    except ExportError as exc:
        logger.warning("PNG export failed (%s); saving SVG instead", exc)
        try:
            path = sink.download(svg_text.encode("utf-8"), SVG_FILENAME)
        except OSError as write_exc:
            raise ExportError(f"Save failed: {write_exc}") from write_exc
        return ExportResult(path, "svg", "download", f"{exc} Saved SVG instead.", is_error=True)

    try:
        saved = sink.save(png, PNG_FILENAME)
    except OSError as exc:
        raise ExportError(f"Save failed: {exc}") from exc
    if saved is None:
        return None
    path, via = saved
    message = "Saved PNG (fallback)." if via == "fallback" else "Saved PNG."
    return ExportResult(path, "png", via, message)
