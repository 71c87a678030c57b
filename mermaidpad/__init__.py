"""Render Mermaid diagrams, markdown with embedded diagrams, or plain text."""

from .classifier import Classification, RenderMode, SourceHint, classify
from .errors import (
    DiagramCompileError,
    EmptyInputError,
    ExportError,
    MermaidpadError,
    ReadError,
    SvgError,
    ViewerUnavailableError,
)
from .orchestrator import RenderContext, RenderState, load_file, load_sample, render
from .sanitize import sanitize

__version__ = "0.1.0"

__all__ = [
    "Classification",
    "DiagramCompileError",
    "EmptyInputError",
    "ExportError",
    "MermaidpadError",
    "ReadError",
    "RenderContext",
    "RenderMode",
    "RenderState",
    "SourceHint",
    "SvgError",
    "ViewerUnavailableError",
    "classify",
    "load_file",
    "load_sample",
    "render",
    "sanitize",
]
