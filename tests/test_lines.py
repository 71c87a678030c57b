"""Tests for line-level structure rules."""

import pytest

from mermaidpad.lines import (
    LineKind,
    classify_line,
    closes_fence,
    diagram_starter,
    fence_language,
    is_block_structure,
    is_diagram_language,
)


class TestClassifyLine:
    @pytest.mark.parametrize(
        "line, kind",
        [
            ("", LineKind.BLANK),
            ("   ", LineKind.BLANK),
            ("```mermaid", LineKind.FENCE),
            ("~~~", LineKind.FENCE),
            ("# Title", LineKind.HEADING),
            ("---", LineKind.RULE),
            ("* * *", LineKind.RULE),
            ("> quoted", LineKind.QUOTE),
            ("- item", LineKind.UNORDERED),
            ("+ item", LineKind.UNORDERED),
            ("3. item", LineKind.ORDERED),
            ("just words", LineKind.TEXT),
            ("#hashtag", LineKind.TEXT),
        ],
    )
    def test_kinds(self, line, kind):
        assert classify_line(line).kind is kind

    def test_heading_level_and_closing_hashes(self):
        line = classify_line("### Section ###")
        assert line.level == 3
        assert line.text == "Section"

    def test_ordered_marker_is_number(self):
        assert classify_line("12. twelve").marker == "12"

    def test_fence_info(self):
        line = classify_line("```Mermaid title")
        assert line.marker == "```"
        assert line.info == "Mermaid"


class TestFenceHelpers:
    def test_closes_with_longer_run(self):
        assert closes_fence("`````", "```")

    def test_does_not_close_with_shorter_run(self):
        assert not closes_fence("```", "````")

    def test_does_not_close_with_other_marker(self):
        assert not closes_fence("~~~", "```")

    def test_closing_fence_has_no_info(self):
        assert not closes_fence("```python", "```")

    def test_fence_language_first_word_lowercased(self):
        assert fence_language("MERMAID  extra") == "mermaid"
        assert is_diagram_language("Mermaid")
        assert not is_diagram_language("python")


class TestDiagramStarter:
    def test_case_insensitive(self):
        assert diagram_starter("sequenceDiagram") == "sequencediagram"

    def test_first_word_only(self):
        assert diagram_starter("flowchart LR") == "flowchart"
        assert diagram_starter("a flowchart") is None

    def test_prefix_is_not_a_starter(self):
        assert diagram_starter("graphics are nice") is None

    def test_block_structure(self):
        assert is_block_structure("- item")
        assert not is_block_structure("plain words")
