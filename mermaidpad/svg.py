"""In-place edits on compiled SVG markup.

Only the root ``<svg>`` open tag, ``<style>`` bodies and ``<image>`` tags are
touched; everything else is passed through byte for byte so Mermaid's
foreignObject labels keep their namespaces.
"""

from __future__ import annotations

import re

from .errors import SvgError

_SVG_OPEN = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)
_STYLE_BLOCK = re.compile(r"(<style\b[^>]*>)(.*?)(</style\s*>)", re.IGNORECASE | re.DOTALL)
_IMPORT_RULE = re.compile(r"@import[^;]+;?", re.IGNORECASE)
_IMAGE_TAG = re.compile(r"<image\b[^>]*>", re.IGNORECASE)
_REMOTE_HREF = re.compile(r"""\s(?:xlink:)?href\s*=\s*(["'])\s*https?://[^"']*\1""", re.IGNORECASE)
_MAX_WIDTH = re.compile(r"max-width\s*:\s*[^;]+;?", re.IGNORECASE)
_NUMBER = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*(px)?\s*$")


def _attribute_pattern(name: str) -> re.Pattern:
    return re.compile(rf"""\s{re.escape(name)}\s*=\s*("[^"]*"|'[^']*')""", re.IGNORECASE)


def root_tag(svg_text: str) -> re.Match:
    match = _SVG_OPEN.search(svg_text or "")
    if match is None:
        raise SvgError("No SVG output")
    return match


def get_attribute(tag: str, name: str) -> str | None:
    match = _attribute_pattern(name).search(tag)
    return match.group(1)[1:-1] if match else None


def remove_attributes(tag: str, *names: str) -> str:
    for name in names:
        tag = _attribute_pattern(name).sub("", tag)
    return tag


def set_attribute(tag: str, name: str, value: str) -> str:
    tag = remove_attributes(tag, name)
    escaped = value.replace("&", "&amp;").replace('"', "&quot;")
    closer = "/>" if tag.endswith("/>") else ">"
    return f'{tag[: -len(closer)].rstrip()} {name}="{escaped}"{closer}'


def _replace_root(svg_text: str, match: re.Match, tag: str) -> str:
    return svg_text[: match.start()] + tag + svg_text[match.end() :]


def _dimension(value: str | None) -> float | None:
    if not value:
        return None
    match = _NUMBER.match(value)
    return float(match.group(1)) if match else None


def view_box(svg_text: str) -> tuple[float, float, float, float] | None:
    """Return the root viewBox as ``(x, y, width, height)`` if it is usable."""
    raw = get_attribute(root_tag(svg_text).group(0), "viewBox")
    if not raw:
        return None
    try:
        values = [float(part) for part in raw.replace(",", " ").split()]
    except ValueError:
        return None
    if len(values) != 4 or values[2] <= 0 or values[3] <= 0:
        return None
    return values[0], values[1], values[2], values[3]


def strip_size_attributes(svg_text: str) -> str:
    """Drop explicit width/height so the pan/zoom layer controls sizing."""
    match = root_tag(svg_text)
    return _replace_root(svg_text, match, remove_attributes(match.group(0), "width", "height"))


def normalize_for_viewport(svg_text: str) -> str:
    """Make the graphic fill its parent: ensure a viewBox, drop fixed sizing."""
    match = root_tag(svg_text)
    tag = match.group(0)
    if get_attribute(tag, "viewBox") is None:
        width = _dimension(get_attribute(tag, "width"))
        height = _dimension(get_attribute(tag, "height"))
        if width and height:
            tag = set_attribute(tag, "viewBox", f"0 0 {width:g} {height:g}")
    style = _MAX_WIDTH.sub("", get_attribute(tag, "style") or "").strip()
    if style and not style.endswith(";"):
        style += ";"
    style = f"{style} max-width: none; width: 100%; height: 100%;".strip()
    tag = remove_attributes(tag, "width", "height")
    tag = set_attribute(tag, "style", style)
    tag = set_attribute(tag, "preserveAspectRatio", "xMidYMid meet")
    return _replace_root(svg_text, match, tag)


def strip_external_resources(svg_text: str) -> str:
    """Remove ``@import`` rules and remote image references before rasterizing."""
    text = _STYLE_BLOCK.sub(lambda m: m.group(1) + _IMPORT_RULE.sub("", m.group(2)) + m.group(3), svg_text)
    return _IMAGE_TAG.sub(lambda m: _REMOTE_HREF.sub("", m.group(0)), text)
