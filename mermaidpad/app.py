"""PySide6 windows: the primary editor/preview and the detached viewer."""

from __future__ import annotations

import json
import logging
import sys
from functools import partial
from pathlib import Path

from PySide6.QtCore import QObject, QTimer, QUrl, Signal
from PySide6.QtGui import QGuiApplication
from PySide6.QtWebEngineCore import QWebEngineSettings
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPlainTextEdit,
    QPushButton,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from .channel import SecondaryViewer
from .classifier import SourceHint
from .compiler import MermaidCliCompiler
from .config import Settings
from .errors import ViewerUnavailableError
from .export import ExportSink, QtSvgRasterizer
from .orchestrator import LoadedSource, RenderContext, load_file, load_sample, render, reset_view, resize_view
from .page import render_page
from .samples import DEFAULT_SAMPLE, SAMPLES
from .surface import DocumentSurface, StatusLine
from .workers import QtJobRunner

logger = logging.getLogger(__name__)

PAGE_BASE_URL = QUrl("https://mermaidpad.local/")


class WebSurface(DocumentSurface):
    """DocumentSurface mirrored into a QWebEngineView through the page bridge."""

    def __init__(self, view: QWebEngineView, title: str, *, viewer: bool = False):
        super().__init__()
        self.view = view
        self._loaded = False
        self._queued: list[str] = []
        settings = view.settings()
        # Local HTML loads svg-pan-zoom from the CDN when no local copy exists.
        settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessRemoteUrls, True)
        view.loadFinished.connect(self._on_load_finished)
        view.setHtml(render_page("", title, viewer=viewer), PAGE_BASE_URL)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def run_js(self, script: str, callback=None) -> None:
        if not self._loaded:
            self._queued.append(script)
            return
        if callback is None:
            self.view.page().runJavaScript(script)
        else:
            self.view.page().runJavaScript(script, callback)

    def _on_load_finished(self, ok: bool) -> None:
        if not ok:
            logger.warning("Preview page failed to load")
        self._loaded = True
        queued, self._queued = self._queued, []
        for script in queued:
            self.view.page().runJavaScript(script)

    def _on_clear(self) -> None:
        self.run_js("window.mermaidpad.mount('');")

    def _on_mount(self, html_text: str) -> None:
        self.run_js(f"window.mermaidpad.mount({json.dumps(html_text)});")

    def _on_fill(self, target_id: str, markup: str) -> None:
        self.run_js(f"window.mermaidpad.fill({json.dumps(target_id)}, {json.dumps(markup)});")


class WebPanZoomHandle:
    def __init__(self, surface: WebSurface):
        self.surface = surface

    def _call(self, name: str) -> None:
        self.surface.run_js(f"window.mermaidpad.call({json.dumps(name)});")

    def fit(self) -> None:
        self._call("fit")

    def center(self) -> None:
        self._call("center")

    def resize(self) -> None:
        self._call("resize")

    def reset(self) -> None:
        self._call("reset")

    def destroy(self) -> None:
        self.surface.run_js("window.mermaidpad.destroy();")


class WebPanZoom:
    """svg-pan-zoom attached inside a WebSurface page."""

    def attach(self, surface: WebSurface) -> WebPanZoomHandle:
        surface.run_js("window.mermaidpad.attach();")
        return WebPanZoomHandle(surface)


class WindowPort(QObject):
    """Handle to one window; posted messages arrive there with the peer as source."""

    received = Signal(object, object)
    close_requested = Signal()

    def __init__(self, parent: QObject | None = None):
        super().__init__(parent)
        self.peer: WindowPort | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def post_message(self, message: dict) -> None:
        if self._closed:
            return
        # Deliver on a later event-loop turn, like cross-window messaging.
        QTimer.singleShot(0, partial(self._deliver, dict(message)))

    def _deliver(self, message: dict) -> None:
        if not self._closed:
            self.received.emit(self.peer, message)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.close_requested.emit()

    def mark_closed(self) -> None:
        self._closed = True


def create_port_pair() -> tuple[WindowPort, WindowPort]:
    """Return ``(viewer_port, opener_port)`` wired as each other's source."""
    viewer_port = WindowPort()
    opener_port = WindowPort()
    viewer_port.peer = opener_port
    opener_port.peer = viewer_port
    return viewer_port, opener_port


def _status_style(is_error: bool) -> str:
    return "color: #f87171;" if is_error else "color: #9ca3af;"


class ViewerWindow(QWidget):
    """Detached full-window viewer with PNG export."""

    def __init__(self, viewer_port: WindowPort, opener_port: WindowPort, settings: Settings):
        super().__init__()
        self.viewer_port = viewer_port
        self.settings = settings
        self.setWindowTitle("mermaidpad viewer")

        self.preview = QWebEngineView()
        self.status_label = QLabel("Waiting for diagram...")
        self.status_label.setStyleSheet(_status_style(False))
        save_btn = QPushButton("Save PNG")
        save_btn.clicked.connect(self._save_png)
        close_btn = QPushButton("Close")
        close_btn.clicked.connect(self.close)

        toolbar = QHBoxLayout()
        toolbar.addWidget(self.status_label, 1)
        toolbar.addWidget(save_btn)
        toolbar.addWidget(close_btn)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)
        layout.addLayout(toolbar)
        layout.addWidget(self.preview, 1)

        self.surface = WebSurface(self.preview, "mermaidpad viewer", viewer=True)
        self.viewer = SecondaryViewer(
            self.surface,
            WebPanZoom(),
            opener_port,
            rasterizer=QtSvgRasterizer(settings.export_background, settings.export_timeout_ms),
            sink=ExportSink(settings.download_dir, picker=self._pick_save_path),
            status=StatusLine(listener=self._show_status),
        )
        viewer_port.received.connect(self._on_message)
        viewer_port.close_requested.connect(self.close)
        self.preview.loadFinished.connect(self._on_load_finished)

    def _on_load_finished(self, _ok: bool) -> None:
        self.viewer.start()

    def _on_message(self, _source, message) -> None:
        self.viewer.handle_message(message)

    def _show_status(self, message: str, is_error: bool) -> None:
        self.status_label.setText(message)
        self.status_label.setStyleSheet(_status_style(is_error))

    def _pick_save_path(self, filename: str) -> Path | None:
        selected, _filter = QFileDialog.getSaveFileName(
            self,
            "Save PNG",
            str(self.settings.download_dir / filename),
            "PNG Image (*.png)",
        )
        return Path(selected) if selected else None

    def _save_png(self) -> None:
        self.surface.run_js("window.mermaidpad.renderedSize();", self._save_with_size)

    def _save_with_size(self, size) -> None:
        rendered = None
        if isinstance(size, list) and len(size) == 2:
            rendered = (float(size[0]), float(size[1]))
        self.viewer.save(rendered)

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        self.viewer.resize()

    def closeEvent(self, event) -> None:
        self.viewer_port.mark_closed()
        super().closeEvent(event)


class MainWindow(QMainWindow):
    def __init__(self, settings: Settings):
        super().__init__()
        self.settings = settings
        self._hint: SourceHint | None = None
        self._loading_text = False
        self._viewer_windows: list[ViewerWindow] = []
        self.setWindowTitle("mermaidpad")
        self.resize(1400, 900)

        self.sample_select = QComboBox()
        self.sample_select.addItem("Samples...", "")
        for sample in SAMPLES.values():
            self.sample_select.addItem(sample.label, sample.key)
        self.sample_select.currentIndexChanged.connect(self._on_sample_selected)

        open_btn = QPushButton("Open file")
        open_btn.clicked.connect(self._prompt_open_file)
        render_btn = QPushButton("Render")
        render_btn.clicked.connect(self._render_clicked)
        reset_btn = QPushButton("Reset view")
        reset_btn.clicked.connect(lambda: reset_view(self.context))

        self.editor = QPlainTextEdit()
        self.editor.setPlaceholderText("Paste a Mermaid diagram, markdown, or plain text")
        self.editor.textChanged.connect(self._on_text_changed)
        self.preview = QWebEngineView()

        toolbar = QHBoxLayout()
        toolbar.addWidget(self.sample_select)
        toolbar.addWidget(open_btn)
        toolbar.addStretch(1)
        toolbar.addWidget(reset_btn)
        toolbar.addWidget(render_btn)

        splitter = QSplitter()
        splitter.addWidget(self.editor)
        splitter.addWidget(self.preview)
        splitter.setSizes([480, 920])

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.setContentsMargins(6, 6, 6, 0)
        layout.addLayout(toolbar)
        layout.addWidget(splitter, 1)
        self.setCentralWidget(central)

        self.status_label = QLabel("Ready")
        self.statusBar().addWidget(self.status_label, 1)

        self.context = RenderContext(
            surface=WebSurface(self.preview, "mermaidpad"),
            compiler=MermaidCliCompiler(settings.mmdc_command, theme=settings.theme, timeout=settings.compile_timeout),
            runner=QtJobRunner(parent=self),
            status=StatusLine(listener=self._show_status),
            interaction=WebPanZoom(),
            open_viewer=self._open_viewer_window,
        )

    def _show_status(self, message: str, is_error: bool) -> None:
        self.status_label.setText(message)
        self.status_label.setStyleSheet(_status_style(is_error))

    def _set_editor_text(self, loaded: LoadedSource) -> None:
        self._loading_text = True
        try:
            self.editor.setPlainText(loaded.text)
        finally:
            self._loading_text = False
        self._hint = loaded.hint

    def _on_text_changed(self) -> None:
        # Hand edits drop the type hint that came with a file or sample.
        if not self._loading_text:
            self._hint = None

    def _render_clicked(self) -> None:
        render(self.context, self.editor.toPlainText(), self._hint, open_viewer=True)

    def _on_sample_selected(self, index: int) -> None:
        key = self.sample_select.itemData(index)
        if key:
            load_sample(self.context, key, on_loaded=self._set_editor_text)

    def _prompt_open_file(self) -> None:
        selected, _filter = QFileDialog.getOpenFileName(
            self,
            "Open file",
            str(Path.home()),
            "Diagrams and markdown (*.mmd *.mermaid *.md *.markdown *.txt);;All files (*)",
        )
        if selected:
            self.open_path(Path(selected))

    def open_path(self, path: Path) -> None:
        load_file(self.context, path, on_loaded=self._set_editor_text)

    def load_default_sample(self) -> None:
        load_sample(self.context, DEFAULT_SAMPLE, on_loaded=self._set_editor_text)

    def _open_viewer_window(self) -> WindowPort:
        viewer_port, opener_port = create_port_pair()
        opener_port.received.connect(self.context.channel.on_message)
        try:
            window = ViewerWindow(viewer_port, opener_port, self.settings)
        except RuntimeError as exc:
            raise ViewerUnavailableError(str(exc)) from exc
        screen = QGuiApplication.primaryScreen()
        if screen is not None:
            window.resize(screen.availableGeometry().size())
        window.show()
        self._viewer_windows = [w for w in self._viewer_windows if w.isVisible()]
        self._viewer_windows.append(window)
        return viewer_port

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        resize_view(self.context)


def run_app(path: Path | None, settings: Settings) -> int:
    app = QApplication(sys.argv)
    app.setApplicationName("mermaidpad")
    app.setDesktopFileName("mermaidpad")
    window = MainWindow(settings)
    if path is not None:
        window.open_path(path)
    else:
        window.load_default_sample()
    window.show()
    return app.exec()
