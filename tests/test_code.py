from TexPreview.code_highlighter import CodeConverter, highlight, normalize_language, render_inline_code
from TexPreview.counters import LabelRegistry


def test_highlight_escapes_and_marks_tokens():
    html = highlight("def area(r):  # circle\n    return 'x' < 2", "python")
    assert '<span class="syntax-keyword">def</span>' in html
    assert '<span class="syntax-function">area</span>' in html
    assert '<span class="syntax-comment"># circle</span>' in html
    assert "<span class=\"syntax-string\">'x'</span>" in html
    assert "&lt;" in html
    assert "<" not in html.replace("<span", "").replace("</span", "")


def test_plain_text_is_only_escaped():
    assert highlight("a < b", "text") == "a &lt; b"


def test_language_aliases():
    assert normalize_language("py") == "python"
    assert normalize_language("C++") == "cpp"
    assert normalize_language("cobol") == "default"


def test_minted_language_argument():
    html = CodeConverter().render_environment("minted", "{python}\nprint(1)\n")
    assert 'class="code-block language-python"' in html
    assert '<span class="language-label">python</span>' in html


def test_lstlisting_caption_and_label_are_numbered():
    labels = LabelRegistry()
    converter = CodeConverter(labels=labels)
    html = converter.render_environment(
        "lstlisting", "\n    x = 1\n", "language=Python, caption=Demo, label=lst:demo"
    )
    assert 'id="listing-1"' in html
    assert '<div class="code-caption">Listing 1: Demo</div>' in html
    assert labels.resolve("lst:demo").number == "1"
    assert "x = " in html


def test_copy_button_can_be_disabled():
    html = CodeConverter(copy_button=False).render_block("x", "text")
    assert "copy-btn" not in html


def test_code_tabs():
    content = "{python:Main}\nprint(1)\n{bash}\necho hi\n"
    html = CodeConverter().render_tabs(content)
    assert html.count('<button class="code-tab') == 2
    assert 'data-tab="code-1-1">Main</button>' in html
    assert '<button class="code-tab active"' in html
    assert 'id="code-1-2" class="code-pane"' in html


def test_inline_code_is_escaped_not_highlighted():
    assert render_inline_code("if a<1") == '<code class="inline-code">if a&lt;1</code>'
