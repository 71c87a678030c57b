"""Exception types raised by the mermaidpad pipeline."""

from __future__ import annotations


class MermaidpadError(Exception):
    """Base class for all mermaidpad failures."""


class EmptyInputError(MermaidpadError):
    """Raised when there is no content to render."""

    def __init__(self, message: str = "Please provide content to render.") -> None:
        super().__init__(message)


class DiagramCompileError(MermaidpadError):
    """Raised by a diagram compiler that rejected its source."""

    def __init__(self, message: str, diagram_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.diagram_id = diagram_id


class ViewerUnavailableError(MermaidpadError):
    """Raised when the secondary viewer window could not be opened."""


class ExportError(MermaidpadError):
    """Raised when a raster export step fails or times out."""


class ReadError(MermaidpadError):
    """Raised when a loaded file cannot be read or decoded."""


class SvgError(MermaidpadError, ValueError):
    """Raised when compiler output does not contain a usable <svg> root."""
