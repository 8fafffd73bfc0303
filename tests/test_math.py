from TexPreview.counters import CounterRegistry, LabelRegistry
from TexPreview.math_converter import MathConverter, substitute_symbols
from TexPreview.style import StyleOptions


def test_symbol_substitution_is_idempotent():
    once = substitute_symbols(r"\alpha \leq \beta + \infty")
    assert once == "α ≤ β + ∞"
    assert substitute_symbols(once) == once


def test_symbol_substitution_matches_whole_names():
    assert substitute_symbols(r"\in \infty \int") == "∈ ∞ ∫"
    assert substitute_symbols(r"\unknowncmd") == r"\unknowncmd"


def test_inline_math_markup():
    html = MathConverter().render_inline(r"\alpha + \beta")
    assert html == '<span class="math-inline">α + β</span>'


def test_scripts_fractions_and_roots():
    converter = MathConverter()
    assert '<sup class="math-sup" style="font-size: 0.8em">2</sup>' in converter.convert("x^2")
    assert '<sub class="math-sub" style="font-size: 0.8em">ij</sub>' in converter.convert("a_{ij}")
    fraction = converter.convert(r"\frac{a}{b}")
    assert '<span class="math-numerator">a</span>' in fraction
    assert '<span class="math-denominator">b</span>' in fraction
    assert "√" in converter.convert(r"\sqrt{2}")
    assert converter.convert(r"\mathbb{R}") == "ℝ"


def test_matrix_inside_math():
    html = MathConverter().convert(r"\begin{pmatrix}1 & 2\\3 & 4\end{pmatrix}")
    assert html.count('class="matrix-cell"') == 4
    assert '<span class="matrix-delim matrix-left">(</span>' in html


def test_equation_is_numbered_and_labelled():
    labels = LabelRegistry()
    converter = MathConverter(CounterRegistry(), labels)
    html = converter.render_environment("equation", r"E = mc^2 \label{eq:energy}")
    assert '<span class="equation-number">(1)</span>' in html
    assert 'id="equation-1"' in html
    assert labels.resolve("eq:energy").anchor == "equation-1"


def test_align_rows_number_independently():
    converter = MathConverter()
    html = converter.render_environment("align", r"a &= b \\ c &= d \nonumber \\ e &= f")
    assert "(1)" in html
    assert "(2)" in html
    assert "(3)" not in html


def test_starred_and_tagged_equations():
    converter = MathConverter()
    assert "equation-number" not in converter.render_environment("equation*", "x")
    assert '<span class="equation-number">(*)</span>' in converter.render_environment("equation", r"x \tag{*}")
    assert converter.counters.value("equation") == 0


def test_process_leaves_escaped_dollars():
    text = MathConverter().process(r"costs \$5 and $y$ here")
    assert text.startswith(r"costs \$5 and ")
    assert '<span class="math-inline">y</span>' in text


def test_process_hands_fragments_to_protect():
    seen = []

    def protect(html, block):
        seen.append(block)
        return "[math]"

    text = MathConverter().process(r"a $x$ b \[y\] c", protect)
    assert text == "a [math] b [math] c"
    assert seen == [True, False]


def test_references_inside_math_are_kept_for_later():
    assert MathConverter().convert(r"\eqref{eq:a}") == r"\eqref{eq:a}"


def test_display_math_carries_configured_line_height():
    converter = MathConverter(style=StyleOptions(line_height=2.0))
    assert converter.render_display("x").startswith('<div class="math-display" style="line-height: 2">')
    assert 'style="line-height: 2"' in converter.render_environment("equation", "x")
    assert "line-height" not in MathConverter().render_display("x")


def test_shared_registries_are_used_even_when_empty():
    counters, labels = CounterRegistry(), LabelRegistry()
    converter = MathConverter(counters, labels)
    assert converter.labels is labels
    assert converter.counters is counters
