"""Diagram compiler service backed by the Mermaid CLI (``mmdc``)."""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Protocol, Sequence

from .errors import DiagramCompileError

logger = logging.getLogger(__name__)


class DiagramCompiler(Protocol):
    def compile(self, diagram_id: str, source: str) -> str:
        """Return SVG markup for ``source`` or raise DiagramCompileError."""
        ...


def extract_mmdc_error_details(stderr_text: str) -> str:
    """Reduce mermaid-cli stderr to the parser message, dropping stack frames."""
    raw = (stderr_text or "").replace("\r\n", "\n").replace("\r", "\n")
    lines = [line.strip() for line in raw.split("\n") if line.strip()]
    lines = [line for line in lines if not line.startswith("at ")]
    if not lines:
        return "unknown error"
    for index, line in enumerate(lines):
        if line.startswith("Error:"):
            return "\n".join([line[len("Error:") :].strip(), *lines[index + 1 : index + 4]]).strip()
    return "\n".join(lines[:6])


class MermaidCliCompiler:
    """Compile Mermaid definitions to SVG by shelling out to mermaid-cli."""

    def __init__(
        self,
        command: Sequence[str] = ("mmdc",),
        *,
        theme: str = "default",
        timeout: float = 20.0,
    ) -> None:
        self.command = tuple(command)
        self.theme = theme
        self.timeout = timeout

    def compile(self, diagram_id: str, source: str) -> str:
        with tempfile.TemporaryDirectory(prefix="mermaidpad-") as workdir:
            input_path = Path(workdir) / f"{diagram_id}.mmd"
            output_path = Path(workdir) / f"{diagram_id}.svg"
            input_path.write_text(source, encoding="utf-8")
            command = [
                *self.command,
                "--quiet",
                "-i",
                str(input_path),
                "-o",
                str(output_path),
                "-t",
                self.theme,
                "-b",
                "transparent",
            ]
            try:
                # mmdc starts a headless browser per call; keep it bounded.
                result = subprocess.run(
                    command,
                    text=True,
                    capture_output=True,
                    check=False,
                    timeout=self.timeout,
                )
            except FileNotFoundError as exc:
                raise DiagramCompileError(
                    f"Mermaid CLI not found ({self.command[0]}); install @mermaid-js/mermaid-cli",
                    diagram_id,
                ) from exc
            except subprocess.TimeoutExpired as exc:
                raise DiagramCompileError("Mermaid render timed out", diagram_id) from exc

            if result.returncode != 0:
                details = extract_mmdc_error_details(result.stderr or result.stdout or "")
                logger.debug("mmdc failed for %s: %s", diagram_id, details)
                raise DiagramCompileError(details, diagram_id)

            try:
                svg_text = output_path.read_text(encoding="utf-8").strip()
            except OSError as exc:
                raise DiagramCompileError(f"Mermaid CLI produced no output: {exc}", diagram_id) from exc

        if "<svg" not in svg_text.casefold():
            raise DiagramCompileError("Mermaid CLI did not return SVG output", diagram_id)
        return svg_text
