from TexPreview.tables import css_length, parse_colspec, render_tabular


def test_colspec_alignment_and_rules():
    columns = parse_colspec("|l|c|r|")
    assert [c.align for c in columns] == ["left", "center", "right"]
    assert all(c.border_left for c in columns)
    assert columns[-1].border_right
    assert not columns[0].border_right


def test_colspec_repeats_and_widths():
    assert [c.align for c in parse_colspec("*{3}{c}")] == ["center"] * 3
    column = parse_colspec("p{3cm}")[0]
    assert column.width == "3cm"


def test_first_row_is_header():
    content = "{|l|c|}\n\\hline\nA & B \\\\\n\\hline\n1 & 2 \\\\\n\\hline\n"
    html = render_tabular("tabular", content)
    assert html.startswith('<table class="latex-table"><thead><tr')
    assert '<th style="text-align: left; border-left: 1px solid #333">A</th>' in html
    assert "<td" in html and ">2</td>" in html
    assert html.count("<tr") == 2
    assert "border-bottom: 1px solid #333" in html


def test_multicolumn_spans():
    html = render_tabular("tabular", "{cc}\\multicolumn{2}{c}{Wide} \\\\ a & b")
    assert '<th colspan="2" style="text-align: center">Wide</th>' in html


def test_escaped_entities_are_not_cell_separators():
    html = render_tabular("tabular", "{ll}a &lt; b & c")
    assert ">a &lt; b</th>" in html
    assert ">c</th>" in html


def test_empty_table():
    assert render_tabular("tabular", "{c}") == '<table class="latex-table"></table>'


def test_css_length():
    assert css_length("0.5\\textwidth") == "50%"
    assert css_length("\\linewidth") == "100%"
    assert css_length("3cm") == "3cm"
    assert css_length("weird") == "auto"
