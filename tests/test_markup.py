"""Tests for the markdown subset compiler."""

from mermaidpad.markup import (
    BlockKind,
    DocumentBlock,
    compile_document,
    compile_markup,
    diagram_placeholder,
    render_inline,
    render_plain,
)


class TestParagraphs:
    def test_two_trailing_spaces_force_break(self):
        assert compile_markup("first line  \nsecond line") == "<p>first line<br>\nsecond line</p>"

    def test_without_trailing_spaces_lines_join(self):
        assert compile_markup("first line\nsecond line") == "<p>first line second line</p>"

    def test_three_trailing_spaces_do_not_break(self):
        assert compile_markup("first   \nsecond") == "<p>first second</p>"

    def test_blank_line_separates_paragraphs(self):
        assert compile_markup("one\n\ntwo") == "<p>one</p>\n<p>two</p>"


class TestInline:
    def test_escapes_structural_characters(self):
        assert render_inline("<script>alert('x') & \"y\"</script>") == (
            "&lt;script&gt;alert(&#x27;x&#x27;) &amp; &quot;y&quot;&lt;/script&gt;"
        )

    def test_bold_then_italic(self):
        assert render_inline("**bold** and *italic* and __also__ _too_") == (
            "<strong>bold</strong> and <em>italic</em> and <strong>also</strong> <em>too</em>"
        )

    def test_code_span_not_formatted(self):
        assert render_inline("run `**not bold** <b>` now") == "run <code>**not bold** &lt;b&gt;</code> now"

    def test_literal_break_tag_survives_escaping(self):
        assert render_inline("a<br>b<BR/>c") == "a<br>\nb<br>\nc"

    def test_snake_case_is_not_italic(self):
        assert render_inline("call some_func_name now") == "call some_func_name now"

    def test_emphasis_cannot_inject_markup(self):
        assert render_inline("**<img src=x>**") == "<strong>&lt;img src=x&gt;</strong>"


class TestBlocks:
    def test_headings(self):
        assert compile_markup("# One\n###### Six") == "<h1>One</h1>\n<h6>Six</h6>"

    def test_rule(self):
        assert compile_markup("above\n\n---\n\nbelow") == "<p>above</p>\n<hr>\n<p>below</p>"

    def test_quote_lines_merge(self):
        assert compile_markup("> first\n> second") == "<blockquote><p>first second</p></blockquote>"

    def test_unordered_list(self):
        assert compile_markup("- a\n- **b**") == "<ul><li>a</li><li><strong>b</strong></li></ul>"

    def test_ordered_list_start(self):
        assert compile_markup("3. c\n4. d") == '<ol start="3"><li>c</li><li>d</li></ol>'

    def test_list_kinds_do_not_merge(self):
        assert compile_markup("- a\n1. b") == "<ul><li>a</li></ul>\n<ol><li>b</li></ol>"

    def test_text_line_ends_list(self):
        assert compile_markup("- a\nafter") == "<ul><li>a</li></ul>\n<p>after</p>"

    def test_code_fence_escaped_verbatim(self):
        text = "```python\nif a < b and **c**:\n    pass\n```"
        assert compile_markup(text) == (
            '<pre><code class="language-python">if a &lt; b and **c**:\n    pass</code></pre>'
        )

    def test_unclosed_fence_takes_rest(self):
        assert compile_markup("```\n# not a heading") == "<pre><code># not a heading</code></pre>"

    def test_fence_language_is_sanitized(self):
        assert 'class="language-cscript"' in compile_markup('```c"><script\nx\n```')


class TestDocument:
    def test_placeholders_in_order(self):
        blocks = (
            DocumentBlock(BlockKind.MARKUP_TEXT, "# Title"),
            DocumentBlock(BlockKind.DIAGRAM, "graph TD", "diagram-1-0"),
            DocumentBlock(BlockKind.MARKUP_TEXT, "tail"),
        )
        assert compile_document(blocks) == "\n".join(
            ["<h1>Title</h1>", diagram_placeholder("diagram-1-0"), "<p>tail</p>"]
        )

    def test_plain_text_is_escaped(self):
        assert render_plain("a < b\n  c") == '<pre class="plain-text">a &lt; b\n  c</pre>'
