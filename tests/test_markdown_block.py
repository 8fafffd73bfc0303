from TexPreview.counters import CounterRegistry, LabelRegistry
from TexPreview.markdown_block import MarkdownConverter
from TexPreview.math_converter import MathConverter


def test_markdown_body_is_rendered():
    html = MarkdownConverter().render("\n    # Title\n\n    Some *text* here.\n")
    assert html.startswith('<div class="markdown-block">')
    assert "<h1>Title</h1>" in html
    assert "<em>text</em>" in html


def test_markdown_math_uses_latex_converter():
    html = MarkdownConverter().render("Inline $\\alpha$ and\n\n$$\nx^2\n$$\n")
    assert '<span class="math-inline">α</span>' in html
    assert '<div class="math-display">' in html
    assert '<sup class="math-sup"' in html


def test_markdown_equation_number_becomes_tag():
    converter = MarkdownConverter(MathConverter(CounterRegistry(), LabelRegistry()))
    html = converter.render("$$\ny = 1\n$$ (3)\n")
    assert '<span class="equation-number">(3)</span>' in html


def test_markdown_fences_and_tables():
    html = MarkdownConverter().render("```python\nimport os\n```\n\n| a | b |\n|---|---|\n| 1 | 2 |\n")
    assert 'class="code-block language-python"' in html
    assert '<span class="syntax-keyword">import</span>' in html
    assert "<table>" in html
    assert "<td>1</td>" in html
