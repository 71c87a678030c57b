"""Diagram source cleanup and the bounded auto-repair retry."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import DiagramCompileError
from .lines import diagram_starter, is_fence_line

if TYPE_CHECKING:
    from .compiler import DiagramCompiler

logger = logging.getLogger(__name__)

# Mermaid entity codes for characters that terminate a node shape.
_BRACKET_ENTITIES = {
    "[": "#91;",
    "]": "#93;",
    "(": "#40;",
    ")": "#41;",
    "{": "#123;",
    "}": "#125;",
}
_BRACKETS = frozenset(_BRACKET_ENTITIES)
_CLOSERS = {"[": "]", "(": ")", "{": "}"}

_QUOTED_LABEL = re.compile(r'"([^"\n]*)"')
_NODE_LABEL = re.compile(r"(?P<id>\w+)(?P<open>[\[({])(?P<label>[^\[\](){}\"\n|]+)(?P<close>[\])}])")
_EDGE_LABEL = re.compile(r"(?P<arrow>[<ox]?[-=.]{2,}[->ox]?)(?P<gap>\s*)\|(?P<label>[^|\n]*)\|")
_FLOWCHART_STARTERS = frozenset({"graph", "flowchart"})


@dataclass(frozen=True)
class VectorResult:
    """Outcome of compiling one diagram: SVG markup or a readable error."""

    svg: str | None = None
    error: str | None = None
    repaired: bool = False

    @property
    def ok(self) -> bool:
        return self.svg is not None


def _is_blank_or_fence(line: str) -> bool:
    return not line.strip() or is_fence_line(line)


def clean_boundaries(text: str) -> str:
    """Drop blank lines and fence markers from both ends of a diagram source."""
    if not text:
        return ""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    while lines and _is_blank_or_fence(lines[0]):
        lines.pop(0)
    while lines and _is_blank_or_fence(lines[-1]):
        lines.pop()
    return "\n".join(lines).strip()


def _escape_quoted(match: re.Match) -> str:
    inner = "".join(_BRACKET_ENTITIES.get(char, char) for char in match.group(1))
    return f'"{inner}"'


def _quote_node_label(match: re.Match) -> str:
    if _CLOSERS[match.group("open")] != match.group("close"):
        return match.group(0)
    label = match.group("label")
    if not label.strip():
        return match.group(0)
    return f'{match.group("id")}{match.group("open")}"{label}"{match.group("close")}'


def _quote_edge_label(match: re.Match) -> str:
    label = match.group("label")
    stripped = label.strip()
    if not stripped or (len(stripped) > 1 and stripped.startswith('"') and stripped.endswith('"')):
        return match.group(0)
    if any(char in _BRACKETS for char in label):
        return match.group(0)
    quoted = stripped.replace('"', "#quot;")
    return f'{match.group("arrow")}{match.group("gap")}|"{quoted}"|'


def _is_flowchart(source: str) -> bool:
    for line in source.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("%%"):
            continue
        return diagram_starter(stripped) in _FLOWCHART_STARTERS
    return False


def apply_label_safety(source: str) -> str:
    """Quote label text that Mermaid may misread as structure.

    Brackets inside quoted labels become entity codes. In flowcharts, unquoted
    node labels and pipe-delimited edge labels are wrapped in quotes unless
    they already contain brackets.
    """
    flowchart = _is_flowchart(source)
    repaired: list[str] = []
    for line in source.split("\n"):
        if line.lstrip().startswith("%%"):
            repaired.append(line)
            continue
        line = _QUOTED_LABEL.sub(_escape_quoted, line)
        if flowchart:
            line = _EDGE_LABEL.sub(_quote_edge_label, line)
            # Odd segments sit between pipes, i.e. inside edge labels.
            segments = line.split("|")
            line = "|".join(
                _NODE_LABEL.sub(_quote_node_label, segment) if index % 2 == 0 else segment
                for index, segment in enumerate(segments)
            )
        repaired.append(line)
    return "\n".join(repaired)


def compile_with_repair(compiler: DiagramCompiler, diagram_id: str, source: str) -> VectorResult:
    """Compile once; on failure retry exactly once with label-safety applied."""
    definition = clean_boundaries(source)
    try:
        return VectorResult(svg=compiler.compile(diagram_id, definition))
    except DiagramCompileError as exc:
        first_error = exc

    repaired = apply_label_safety(definition)
    if repaired == definition:
        logger.info("Diagram %s failed and has no labels to repair: %s", diagram_id, first_error.message)
        return VectorResult(error=first_error.message)

    logger.info("Diagram %s failed (%s); retrying with quoted labels", diagram_id, first_error.message)
    try:
        svg = compiler.compile(diagram_id, repaired)
    except DiagramCompileError as exc:
        return VectorResult(error=exc.message)
    return VectorResult(svg=svg, repaired=True)
