"""Command-line entry point: open the editor, or render a file headlessly."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from .compiler import DiagramCompiler, MermaidCliCompiler
from .config import Settings, load_settings
from .errors import ExportError
from .export import ExportSink, QtSvgRasterizer, export_raster
from .orchestrator import RenderContext, load_file
from .page import render_page
from .surface import DocumentSurface, StatusLine

logger = logging.getLogger(__name__)


def configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _print_status(message: str, is_error: bool) -> None:
    print(message, file=sys.stderr if is_error else sys.stdout)


def render_headless(
    path: Path,
    settings: Settings,
    html_out: Path,
    png_out: Path | None = None,
    compiler: DiagramCompiler | None = None,
) -> int:
    """Render ``path`` to a static HTML page and optionally a PNG of the diagram."""
    status = StatusLine(listener=_print_status)
    context = RenderContext(
        surface=DocumentSurface(),
        compiler=compiler
        or MermaidCliCompiler(settings.mmdc_command, theme=settings.theme, timeout=settings.compile_timeout),
        status=status,
    )
    loaded = load_file(context, path)
    if loaded is None or status.is_error:
        return 1

    html_out.parent.mkdir(parents=True, exist_ok=True)
    html_out.write_text(render_page(context.surface.render_html(), loaded.name, interactive=False), encoding="utf-8")
    logger.info("Wrote %s", html_out)

    if png_out is None:
        return 0
    if context.surface.svg is None:
        print("No single diagram to export as PNG.", file=sys.stderr)
        return 1
    return _export_png(context.surface.svg, settings, png_out)


def _export_png(svg_text: str, settings: Settings, png_out: Path) -> int:
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PySide6.QtGui import QGuiApplication

    # The rasterizer needs a running application object for its event loop.
    _app = QGuiApplication.instance() or QGuiApplication(sys.argv[:1])
    sink = ExportSink(png_out.parent, picker=lambda _filename: png_out)
    try:
        result = export_raster(svg_text, QtSvgRasterizer(settings.export_background, settings.export_timeout_ms), sink)
    except ExportError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    if result is None:
        return 1
    _print_status(f"{result.message} {result.path}", result.is_error)
    return 1 if result.is_error else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="mermaidpad",
        description="Render Mermaid diagrams, markdown with diagram blocks, or plain text.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="File to open (.mmd/.mermaid diagrams, .md markdown, anything else is classified by content).",
    )
    parser.add_argument("--html", type=Path, default=None, help="Render headlessly and write a static HTML page here.")
    parser.add_argument("--png", type=Path, default=None, help="With --html, also export the diagram as PNG here.")
    parser.add_argument("--config", type=Path, default=None, help="Config file (default: ~/.mermaidpad.cfg).")
    args = parser.parse_args(argv)

    settings = load_settings(args.config.expanduser() if args.config is not None else None)
    configure_logging(settings.log_level)

    path = Path(args.path).expanduser() if args.path is not None else None
    if path is not None and not path.is_file():
        print(f"File does not exist: {path}", file=sys.stderr)
        return 2

    if args.html is not None:
        if path is None:
            print("--html requires a file to render.", file=sys.stderr)
            return 2
        return render_headless(path, settings, args.html.expanduser(), args.png.expanduser() if args.png else None)
    if args.png is not None:
        print("--png requires --html.", file=sys.stderr)
        return 2

    from .app import run_app

    return run_app(path, settings)


if __name__ == "__main__":
    raise SystemExit(main())
