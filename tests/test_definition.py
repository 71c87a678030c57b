"""Tests for diagram source cleanup and the single repair retry."""

import pytest

from mermaidpad.definition import apply_label_safety, clean_boundaries, compile_with_repair
from mermaidpad.errors import DiagramCompileError
from tests.helpers import FakeCompiler


class TestCleanBoundaries:
    def test_strips_blank_lines(self):
        assert clean_boundaries("\n\n  \ngraph TD\n  A --> B\n\n") == "graph TD\n  A --> B"

    def test_strips_duplicated_fences(self):
        text = "```mermaid\n```mermaid\ngraph TD\n  A --> B\n```\n```\n"
        assert clean_boundaries(text) == "graph TD\n  A --> B"

    def test_keeps_inner_blank_lines(self):
        assert clean_boundaries("graph TD\n\n  A --> B") == "graph TD\n\n  A --> B"

    def test_empty(self):
        assert clean_boundaries("") == ""
        assert clean_boundaries("```\n\n~~~") == ""

    @pytest.mark.parametrize(
        "text",
        [
            "\n```mermaid\ngraph TD\nA-->B\n```\n",
            "~~~\n\n~~~\n  pie\n  \"a\" : 1\n```",
            "   \n\t\n",
            "graph TD\r\nA-->B\r\n",
        ],
    )
    def test_idempotent(self, text):
        once = clean_boundaries(text)
        assert clean_boundaries(once) == once


class TestLabelSafety:
    def test_quotes_pipe_edge_label(self):
        source = "flowchart TD\nA -->|price: $5| B"
        assert apply_label_safety(source) == 'flowchart TD\nA -->|"price: $5"| B'

    def test_quotes_node_label(self):
        source = "graph LR\nA[Cost: 5/10] --> B(Next step)"
        assert apply_label_safety(source) == 'graph LR\nA["Cost: 5/10"] --> B("Next step")'

    def test_escapes_brackets_inside_quotes(self):
        source = 'flowchart TD\nA["list[0]"] --> B'
        assert apply_label_safety(source) == 'flowchart TD\nA["list#91;0#93;"] --> B'

    def test_already_quoted_edge_label_untouched(self):
        source = 'flowchart TD\nA -->|"ok"| B'
        assert apply_label_safety(source) == source

    def test_edge_label_with_brackets_untouched(self):
        source = "flowchart TD\nA -->|f(x)| B"
        assert apply_label_safety(source) == source

    def test_comments_untouched(self):
        source = "flowchart TD\n%% A[note] here\nA --> B"
        assert apply_label_safety(source) == source

    def test_non_flowchart_only_escapes_quotes(self):
        source = 'sequenceDiagram\nA->>B: call[1] "x(y)"'
        assert apply_label_safety(source) == 'sequenceDiagram\nA->>B: call[1] "x#40;y#41;"'

    def test_idempotent(self):
        source = "flowchart TD\nA[One: 1] -->|two: 2| B{Three?}"
        once = apply_label_safety(source)
        assert apply_label_safety(once) == once


class TestCompileWithRepair:
    def test_first_pass_success(self):
        compiler = FakeCompiler()
        result = compile_with_repair(compiler, "d-1", "```mermaid\ngraph TD\nA-->B\n```")
        assert result.ok
        assert not result.repaired
        assert compiler.calls == [("d-1", "graph TD\nA-->B")]

    def test_retry_succeeds_after_quoting(self):
        # Fails only while the label is unquoted.
        compiler = FakeCompiler(fail_on=("|price: $5|",))
        result = compile_with_repair(compiler, "d-1", "flowchart TD\nA -->|price: $5| B")
        assert result.ok
        assert result.repaired
        assert len(compiler.calls) == 2
        assert compiler.calls[1][1] == 'flowchart TD\nA -->|"price: $5"| B'

    def test_retry_failure_is_surfaced(self):
        compiler = FakeCompiler(fail_on=("price",), error="Lexical error")
        result = compile_with_repair(compiler, "d-1", "flowchart TD\nA -->|price: $5| B")
        assert not result.ok
        assert result.error == "Lexical error"
        assert len(compiler.calls) == 2

    def test_no_retry_when_nothing_to_repair(self):
        compiler = FakeCompiler(fail_on=("-->",))
        result = compile_with_repair(compiler, "d-1", "graph TD\nA --> B")
        assert result.error == "Parse error on line 2"
        assert len(compiler.calls) == 1

    def test_non_compile_errors_propagate(self):
        class Broken:
            def compile(self, diagram_id, source):
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            compile_with_repair(Broken(), "d-1", "graph TD")

    def test_compile_error_message(self):
        exc = DiagramCompileError("bad", "d-2")
        assert exc.message == "bad"
        assert exc.diagram_id == "d-2"
