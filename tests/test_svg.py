"""Tests for root-tag edits on compiled SVG."""

import pytest

from mermaidpad.errors import SvgError
from mermaidpad.svg import (
    get_attribute,
    normalize_for_viewport,
    root_tag,
    strip_external_resources,
    strip_size_attributes,
    view_box,
)

MERMAID_SVG = (
    '<svg id="d-1" width="100%" xmlns="http://www.w3.org/2000/svg" '
    'style="max-width: 320px; background: white;" viewBox="0 0 320 180">'
    '<foreignObject width="50" height="20"><div xmlns="http://www.w3.org/1999/xhtml">A</div></foreignObject>'
    "</svg>"
)


class TestRootTag:
    def test_missing_svg(self):
        with pytest.raises(SvgError, match="No SVG output"):
            root_tag("<div>nothing</div>")

    def test_svg_error_is_value_error(self):
        with pytest.raises(ValueError):
            root_tag("")

    def test_view_box(self):
        assert view_box(MERMAID_SVG) == (0.0, 0.0, 320.0, 180.0)

    def test_unusable_view_box(self):
        assert view_box('<svg viewBox="0 0 0 10"></svg>') is None
        assert view_box('<svg viewBox="a b c d"></svg>') is None
        assert view_box("<svg></svg>") is None


class TestStripSize:
    def test_only_root_is_touched(self):
        stripped = strip_size_attributes(MERMAID_SVG)
        assert get_attribute(root_tag(stripped).group(0), "width") is None
        assert '<foreignObject width="50" height="20">' in stripped
        assert 'xmlns="http://www.w3.org/1999/xhtml"' in stripped


class TestNormalizeForViewport:
    def test_fill_parent_sizing(self):
        tag = root_tag(normalize_for_viewport(MERMAID_SVG)).group(0)
        assert get_attribute(tag, "width") is None
        assert get_attribute(tag, "height") is None
        assert get_attribute(tag, "viewBox") == "0 0 320 180"
        assert get_attribute(tag, "preserveAspectRatio") == "xMidYMid meet"
        style = get_attribute(tag, "style")
        assert "max-width: 320px" not in style
        assert style.startswith("background: white;")
        assert style.endswith("max-width: none; width: 100%; height: 100%;")

    def test_view_box_from_dimensions(self):
        tag = root_tag(normalize_for_viewport('<svg width="640px" height="480"><g/></svg>')).group(0)
        assert get_attribute(tag, "viewBox") == "0 0 640 480"

    def test_no_svg(self):
        with pytest.raises(SvgError):
            normalize_for_viewport("Render failed")


class TestStripExternalResources:
    def test_removes_imports_and_remote_images(self):
        svg = (
            "<svg><style>@import url('https://fonts.example/css');.a{fill:red}</style>"
            '<image href="https://cdn.example/x.png" width="5"/>'
            '<image xlink:href="data:image/png;base64,AAAA"/></svg>'
        )
        cleaned = strip_external_resources(svg)
        assert "@import" not in cleaned
        assert ".a{fill:red}" in cleaned
        assert "cdn.example" not in cleaned
        assert '<image width="5"/>' in cleaned
        assert "data:image/png;base64,AAAA" in cleaned
