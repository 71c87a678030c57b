"""Decide whether input is a diagram, a markdown document, or plain text."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath

from markdown_it import MarkdownIt

from .definition import clean_boundaries
from .lines import diagram_starter, is_block_structure, is_diagram_language, is_fence_line

logger = logging.getLogger(__name__)

DIAGRAM_EXTENSIONS = frozenset({".mmd", ".mermaid"})
MARKUP_EXTENSIONS = frozenset({".md", ".markdown", ".mdown", ".mkd", ".mkdn"})


class RenderMode(str, Enum):
    DIAGRAM = "diagram"
    MARKUP = "markup"
    PLAIN = "plain"


class SourceHint(str, Enum):
    DIAGRAM = "diagram"
    MARKUP = "markup"


@dataclass(frozen=True)
class DiagramFence:
    """One top-level fenced diagram region; ``start``/``end`` are line indexes, end exclusive."""

    start: int
    end: int
    content: str


@dataclass(frozen=True)
class Classification:
    mode: RenderMode
    diagram_source: str | None = None
    fence_count: int = 0


_fence_parser = MarkdownIt("commonmark")


def hint_from_filename(name: str | None) -> SourceHint | None:
    """Map a file name's extension to a source hint."""
    if not name:
        return None
    suffix = PurePath(name).suffix.lower()
    if suffix in DIAGRAM_EXTENSIONS:
        return SourceHint.DIAGRAM
    if suffix in MARKUP_EXTENSIONS:
        return SourceHint.MARKUP
    return None


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def find_diagram_fences(text: str) -> list[DiagramFence]:
    """Locate top-level fenced blocks whose info string declares a diagram."""
    fences: list[DiagramFence] = []
    for token in _fence_parser.parse(normalize_newlines(text)):
        if token.type != "fence" or token.level != 0 or not token.map:
            continue
        if not is_diagram_language(token.info):
            continue
        fences.append(DiagramFence(token.map[0], token.map[1], token.content))
    return fences


def _is_single_fence(text: str) -> bool:
    """True when the whole text is exactly one diagram fence and nothing else."""
    top_level = [token for token in _fence_parser.parse(normalize_newlines(text)) if token.level == 0]
    return len(top_level) == 1 and top_level[0].type == "fence" and is_diagram_language(top_level[0].info)


def _find_starter(lines: list[str]) -> int | None:
    for index, line in enumerate(lines):
        if diagram_starter(line):
            return index
    return None


def _is_boundary(line: str) -> bool:
    return not line.strip() or is_fence_line(line)


def _starter_is_pure(lines: list[str], index: int) -> bool:
    # Only blank or bare fence lines may surround the diagram; none may sit inside it.
    if not all(_is_boundary(line) for line in lines[:index]):
        return False
    body = lines[index + 1 :]
    while body and _is_boundary(body[-1]):
        body.pop()
    return not any(is_fence_line(line) for line in body)


def classify(sanitized: str, hint: SourceHint | None = None) -> Classification:
    """Classify sanitized input and extract the candidate diagram source.

    Empty input must be rejected by the caller before classification.
    """
    lines = normalize_newlines(sanitized).split("\n")
    fences = find_diagram_fences(sanitized)
    candidate: str | None = None
    pure = False

    if fences:
        candidate = clean_boundaries(fences[0].content)
        pure = len(fences) == 1 and _is_single_fence(sanitized)
    else:
        starter = _find_starter(lines)
        if starter is not None:
            candidate = clean_boundaries("\n".join(lines[starter:]))
            pure = _starter_is_pure(lines, starter)

    if candidate is None:
        structured = hint is SourceHint.MARKUP or any(is_block_structure(line) for line in lines)
        mode = RenderMode.MARKUP if structured else RenderMode.PLAIN
        logger.debug("No diagram candidate; classified as %s", mode.value)
        return Classification(mode)

    if len(fences) > 1:
        mode = RenderMode.MARKUP
    elif hint is SourceHint.DIAGRAM:
        mode = RenderMode.DIAGRAM
    elif hint is SourceHint.MARKUP:
        mode = RenderMode.MARKUP
    else:
        mode = RenderMode.DIAGRAM if pure else RenderMode.MARKUP
    logger.debug("Classified as %s (fences=%d, pure=%s, hint=%s)", mode.value, len(fences), pure, hint)
    return Classification(mode, candidate, len(fences))
