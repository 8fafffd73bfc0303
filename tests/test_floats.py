from TexPreview.counters import CounterRegistry, LabelRegistry
from TexPreview.floats import (
    FloatConverter,
    render_algorithmic,
    render_graphics,
    resolve_references,
    subfigure_letter,
)


def test_figure_caption_label_and_graphics():
    labels = LabelRegistry()
    converter = FloatConverter(CounterRegistry(), labels)
    html = converter.process(
        r"\begin{figure}[h]\centering\includegraphics[width=0.5\textwidth]{cat.png}"
        r"\caption{Cat}\label{fig:cat}\end{figure}"
    )
    assert html.startswith('<figure class="float-figure placement-h centered" id="figure-1">')
    assert '<figcaption class="figure-caption">Figure 1: Cat</figcaption>' in html
    assert '<img class="latex-image" src="cat.png" alt="cat.png" style="width: 50%">' in html
    assert labels.resolve("fig:cat").number == "1"


def test_uncaptioned_figure_is_still_numbered():
    converter = FloatConverter()
    html = converter.process(r"\begin{figure}\includegraphics{a.png}\end{figure}")
    assert '<figcaption class="figure-caption caption-missing">Figure 1</figcaption>' in html
    assert converter.blocks[0].number == "1"


def test_float_numbers_follow_source_order():
    converter = FloatConverter()
    text = "".join(
        rf"\begin{{{kind}}}\caption{{{i}}}\end{{{kind}}}"
        for i, kind in enumerate(["figure", "table", "figure", "figure*", "table"])
    )
    converter.process(text)
    figures = [b.number for b in converter.blocks if b.kind == "figure"]
    tables = [b.number for b in converter.blocks if b.kind == "table"]
    assert figures == ["1", "2", "3"]
    assert tables == ["1", "2"]


def test_table_caption_goes_first():
    html = FloatConverter().process(
        r"\begin{table}\caption{Data}\begin{tabular}{c}x\end{tabular}\end{table}"
    )
    assert html.index("Table 1: Data") < html.index('<table class="latex-table">')
    assert html.startswith('<figure class="float-table" id="table-1">')
    assert html.count("latex-table") == 1


def test_subfigures_get_letters():
    labels = LabelRegistry()
    converter = FloatConverter(labels=labels)
    html = converter.process(
        "\\begin{figure}\n"
        "\\begin{subfigure}{0.4\\textwidth}\\includegraphics{a.png}\\caption{A}\\label{fig:a}\\end{subfigure}\n"
        "\\begin{subfigure}{0.4\\textwidth}\\includegraphics{b.png}\\caption{B}\\end{subfigure}\n"
        "\\caption{Both}\n"
        "\\end{figure}"
    )
    assert '<div class="subfigure" id="figure-1-a" style="width: 40%">' in html
    assert '<div class="subfigure-caption">(b) B</div>' in html
    assert "Figure 1: Both" in html
    assert labels.resolve("fig:a").number == "1a"


def test_subfigure_letters_continue_past_z():
    assert [subfigure_letter(i) for i in (1, 26, 27, 28, 52, 53)] == ["a", "z", "aa", "ab", "az", "ba"]


def test_reference_forms():
    labels = LabelRegistry()
    labels.register("fig:a", "1", "figure", "figure-1")
    labels.register("eq:a", "2", "equation", "equation-2")
    text = r"\ref{fig:a} \eqref{eq:a} \autoref{fig:a} \pageref{fig:a} \ref{nope}"
    html = resolve_references(text, labels)
    assert '<a class="cross-ref" href="#figure-1">1</a>' in html
    assert '<a class="cross-ref" href="#equation-2">(2)</a>' in html
    assert "Figure&nbsp;1" in html
    assert "[p.?]" in html
    assert '<span class="cross-ref ref-unresolved">[nope]</span>' in html


def test_list_of_figures():
    converter = FloatConverter()
    converter.process(r"\begin{figure}\caption{Cat}\end{figure}")
    html = converter.list_of("figure")
    assert html.startswith('<nav class="list-of-figures">')
    assert '<a href="#figure-1">Figure 1: Cat</a>' in html


def test_graphics_options():
    assert render_graphics("d.png", "width=3cm") == '<img class="latex-image" src="d.png" alt="d.png" style="width: 3cm">'
    assert "width: 50%" in render_graphics("d.png", "scale=0.5")


def test_algorithmic_indents_and_numbers():
    html = render_algorithmic(r"\State $x \gets 0$ \For{$i$ in list} \State inc \EndFor")
    assert "<strong>for</strong> $i$ in list <strong>do</strong>" in html
    assert '<div class="algorithm-line" style="padding-left: 1.5em"><span class="line-number">3:</span>inc</div>' in html
    assert "<strong>end for</strong>" in html
