"""Compile the supported markdown subset to HTML, carving out diagram fences."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from enum import Enum

from .classifier import find_diagram_fences, normalize_newlines
from .definition import clean_boundaries
from .lines import Line, LineKind, classify_line, closes_fence, fence_language


class BlockKind(str, Enum):
    MARKUP_TEXT = "markup-text"
    DIAGRAM = "diagram"


@dataclass(frozen=True)
class DocumentBlock:
    kind: BlockKind
    content: str
    block_id: str | None = None


# NUL never survives sanitizing, so it cannot collide with user text.
LINE_BREAK = "\x00br\x00"

_BREAK_TAG = re.compile(r"<br\s*/?>", re.IGNORECASE)
_CODE_SPAN = re.compile(r"`([^`\x00]+)`")
_BOLD = re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*|__(?=\S)(.+?)(?<=\S)__")
_ITALIC = re.compile(r"(?<!\*)\*(?=[^\s*])(.+?)(?<=[^\s*])\*(?!\*)|(?<!\w)_(?=[^\s_])(.+?)(?<=[^\s_])_(?!\w)")
_LANGUAGE_CLASS = re.compile(r"[^\w+#.-]")


def split_blocks(text: str, id_prefix: str = "diagram") -> tuple[DocumentBlock, ...]:
    """Partition a document into markup runs and fenced diagram regions, in order."""
    lines = normalize_newlines(text).split("\n")
    blocks: list[DocumentBlock] = []
    cursor = 0
    for index, fence in enumerate(find_diagram_fences(text)):
        _append_markup(blocks, lines[cursor : fence.start])
        blocks.append(DocumentBlock(BlockKind.DIAGRAM, clean_boundaries(fence.content), f"{id_prefix}-{index}"))
        cursor = fence.end
    _append_markup(blocks, lines[cursor:])
    return tuple(blocks)


def _append_markup(blocks: list[DocumentBlock], lines: list[str]) -> None:
    content = "\n".join(lines)
    if content.strip():
        blocks.append(DocumentBlock(BlockKind.MARKUP_TEXT, content))


def _format_emphasis(text: str) -> str:
    text = _BREAK_TAG.sub(LINE_BREAK, text)
    escaped = html.escape(text, quote=True)
    escaped = _BOLD.sub(lambda m: f"<strong>{m.group(1) or m.group(2)}</strong>", escaped)
    escaped = _ITALIC.sub(lambda m: f"<em>{m.group(1) or m.group(2)}</em>", escaped)
    return escaped


def render_inline(text: str) -> str:
    """Escape text, then apply code spans, bold, italic and line breaks."""
    rendered: list[str] = []
    # With one capture group, odd entries are code span contents.
    for index, part in enumerate(_CODE_SPAN.split(text)):
        if index % 2:
            rendered.append(f"<code>{html.escape(part, quote=True)}</code>")
        else:
            rendered.append(_format_emphasis(part))
    return "".join(rendered).replace(LINE_BREAK, "<br>\n")


def _has_hard_break(line: str) -> bool:
    return line.endswith("  ") and not line.endswith("   ")


def _join_lines(lines: list[str]) -> str:
    pieces: list[str] = []
    last = len(lines) - 1
    for position, line in enumerate(lines):
        content = line.strip()
        if position == last:
            pieces.append(content)
        elif _has_hard_break(line):
            pieces.append(content + LINE_BREAK)
        else:
            pieces.append(content + " ")
    return "".join(pieces)


def _collect(lines: list[str], index: int, kinds: tuple[LineKind, ...]) -> tuple[list[Line], int]:
    collected: list[Line] = []
    while index < len(lines):
        line = classify_line(lines[index])
        if line.kind not in kinds:
            break
        collected.append(line)
        index += 1
    return collected, index


def _compile_fence(lines: list[str], index: int, opener: Line, parts: list[str]) -> int:
    body: list[str] = []
    index += 1
    while index < len(lines) and not closes_fence(lines[index], opener.marker):
        body.append(lines[index])
        index += 1
    language = _LANGUAGE_CLASS.sub("", fence_language(opener.info))
    class_attr = f' class="language-{language}"' if language else ""
    parts.append(f"<pre><code{class_attr}>{html.escape(chr(10).join(body), quote=True)}</code></pre>")
    # Skip the closing fence; an unclosed fence has consumed the rest.
    return index + 1


def _compile_list(items: list[Line]) -> str:
    body = "".join(f"<li>{render_inline(item.text.strip())}</li>" for item in items)
    if items[0].kind is LineKind.UNORDERED:
        return f"<ul>{body}</ul>"
    start = int(items[0].marker)
    start_attr = f' start="{start}"' if start != 1 else ""
    return f"<ol{start_attr}>{body}</ol>"


def compile_markup(text: str) -> str:
    """Compile one markup-text block to HTML."""
    lines = normalize_newlines(text.replace("\x00", "")).split("\n")
    parts: list[str] = []
    index = 0
    while index < len(lines):
        line = classify_line(lines[index])
        kind = line.kind
        if kind is LineKind.BLANK:
            index += 1
        elif kind is LineKind.FENCE:
            index = _compile_fence(lines, index, line, parts)
        elif kind is LineKind.HEADING:
            parts.append(f"<h{line.level}>{render_inline(line.text)}</h{line.level}>")
            index += 1
        elif kind is LineKind.RULE:
            parts.append("<hr>")
            index += 1
        elif kind is LineKind.QUOTE:
            quoted, index = _collect(lines, index, (LineKind.QUOTE,))
            texts = [entry.text for entry in quoted if entry.text.strip()]
            parts.append(f"<blockquote><p>{render_inline(_join_lines(texts))}</p></blockquote>")
        elif kind in (LineKind.ORDERED, LineKind.UNORDERED):
            items, index = _collect(lines, index, (kind,))
            parts.append(_compile_list(items))
        else:
            paragraph, index = _collect(lines, index, (LineKind.TEXT,))
            parts.append(f"<p>{render_inline(_join_lines([entry.text for entry in paragraph]))}</p>")
    return "\n".join(parts)


def diagram_placeholder(block_id: str) -> str:
    return (
        f'<div class="diagram-block" id="{html.escape(block_id)}">'
        '<div class="diagram-pending">Rendering diagram...</div>'
        "</div>"
    )


def diagram_error_notice(message: str) -> str:
    return f'<div class="diagram-error"><strong>Diagram failed:</strong> {html.escape(message)}</div>'


def compile_document(blocks: tuple[DocumentBlock, ...]) -> str:
    """Concatenate compiled markup and diagram placeholders in document order."""
    fragments = []
    for block in blocks:
        if block.kind is BlockKind.DIAGRAM:
            fragments.append(diagram_placeholder(block.block_id or ""))
        else:
            fragments.append(compile_markup(block.content))
    return "\n".join(fragment for fragment in fragments if fragment)


def render_plain(text: str) -> str:
    return f'<pre class="plain-text">{html.escape(text, quote=True)}</pre>'
