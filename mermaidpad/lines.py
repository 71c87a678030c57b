"""Line-level matching rules shared by the classifier and the markup compiler.

Every structural decision about a single line of input is made here, so the
block compiler and the content classifier agree on what a heading, a fence or
a diagram starter looks like.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import NamedTuple


class LineKind(str, Enum):
    BLANK = "blank"
    FENCE = "fence"
    HEADING = "heading"
    RULE = "rule"
    QUOTE = "quote"
    ORDERED = "ordered"
    UNORDERED = "unordered"
    TEXT = "text"


class Line(NamedTuple):
    kind: LineKind
    text: str = ""
    level: int = 0
    marker: str = ""
    info: str = ""


DIAGRAM_STARTERS = frozenset(
    {
        "graph",
        "flowchart",
        "sequencediagram",
        "classdiagram",
        "statediagram",
        "statediagram-v2",
        "erdiagram",
        "journey",
        "gantt",
        "pie",
        "mindmap",
        "timeline",
        "gitgraph",
        "quadrantchart",
        "requirementdiagram",
        "xychart-beta",
        "sankey-beta",
        "block-beta",
    }
)

DIAGRAM_LANGUAGES = frozenset({"mermaid"})

_FENCE = re.compile(r"^\s{0,3}(`{3,}|~{3,})\s*([^\s`]*)")
_HEADING = re.compile(r"^\s{0,3}(#{1,6})(?:\s+(.*?))?\s*$")
_HEADING_CLOSER = re.compile(r"\s+#+$")
_RULE = re.compile(r"^\s{0,3}([-*_])(?:[ \t]*\1){2,}[ \t]*$")
_QUOTE = re.compile(r"^\s{0,3}>\s?(.*)$")
_UNORDERED = re.compile(r"^\s*([-*+])\s+(.*)$")
_ORDERED = re.compile(r"^\s*(\d{1,9})[.)]\s+(.*)$")


def classify_line(line: str) -> Line:
    """Return the structural kind of one line, in block-priority order."""
    if not line.strip():
        return Line(LineKind.BLANK)
    match = _FENCE.match(line)
    if match:
        return Line(LineKind.FENCE, marker=match.group(1), info=match.group(2))
    match = _HEADING.match(line)
    if match:
        text = _HEADING_CLOSER.sub("", match.group(2) or "")
        return Line(LineKind.HEADING, text=text, level=len(match.group(1)))
    if _RULE.match(line):
        return Line(LineKind.RULE)
    match = _QUOTE.match(line)
    if match:
        return Line(LineKind.QUOTE, text=match.group(1))
    match = _UNORDERED.match(line)
    if match:
        return Line(LineKind.UNORDERED, text=match.group(2), marker=match.group(1))
    match = _ORDERED.match(line)
    if match:
        return Line(LineKind.ORDERED, text=match.group(2), marker=match.group(1))
    return Line(LineKind.TEXT, text=line)


def is_fence_line(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("```") or stripped.startswith("~~~")


def closes_fence(line: str, opener: str) -> bool:
    """True when ``line`` closes a fence opened with ``opener`` (e.g. ``````)."""
    stripped = line.strip()
    if not stripped or stripped[0] != opener[0]:
        return False
    run = len(stripped) - len(stripped.lstrip(opener[0]))
    return run >= len(opener) and not stripped[run:].strip()


def fence_language(info: str) -> str:
    """First word of a fence info string, lowercased."""
    parts = (info or "").strip().split(maxsplit=1)
    return parts[0].lower() if parts else ""


def is_diagram_language(info: str) -> bool:
    return fence_language(info) in DIAGRAM_LANGUAGES


def diagram_starter(line: str) -> str | None:
    """Return the starter keyword if ``line`` opens a diagram description."""
    parts = line.split(maxsplit=1)
    if not parts:
        return None
    word = parts[0].lower()
    return word if word in DIAGRAM_STARTERS else None


def is_block_structure(line: str) -> bool:
    """True for lines that only make sense as markdown structure."""
    return classify_line(line).kind not in (LineKind.BLANK, LineKind.TEXT)
