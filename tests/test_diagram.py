import pytest

from TexPreview.diagram import DiagramConverter, length_cm, node_text
from TexPreview.model import NodeElement, PathElement, ShapeElement
from TexPreview.style import StyleOptions


def test_node_at_one_one_maps_to_pixels():
    elements = DiagramConverter().parse(r"\node at (1,1) {A};")
    assert len(elements) == 1
    node = elements[0]
    assert isinstance(node, NodeElement)
    assert node.position == (50, -50)
    assert node.text == "A"


def test_origin_and_unit_come_from_style():
    converter = DiagramConverter(StyleOptions(diagram_unit=20, diagram_origin=(10.0, 10.0)))
    assert converter.to_pixels((1, 1)) == (30, -10)


def test_line_with_arrow():
    elements = DiagramConverter().parse(r"\draw[->, thick] (0,0) -- (1,0);")
    path = elements[0]
    assert isinstance(path, PathElement)
    assert path.points == [(0, 0), (50, 0)]
    assert path.arrow_end and not path.arrow_start
    assert path.width == 0.8


def test_cycle_closes_the_path():
    elements = DiagramConverter().parse(r"\filldraw[fill=blue] (0,0) -- (1,0) -- (1,1) -- cycle;")
    path = elements[0]
    assert path.closed
    assert len(path.points) == 3
    assert path.fill != "none"


def test_rectangle_and_circle_shapes():
    elements = DiagramConverter().parse(r"\draw (0,0) rectangle (2,1); \draw (0,0) circle (1);")
    shapes = [e for e in elements if isinstance(e, ShapeElement)]
    assert [s.kind for s in shapes] == ["rectangle", "circle"]
    assert shapes[0].dimensions == (100, 50)


def test_foreach_expands_statements():
    elements = DiagramConverter().parse(r"\foreach \x in {0,...,3} \draw (\x,0) -- (\x,1);")
    assert len(elements) == 4
    assert elements[3].points[0] == (150, 0)


def test_named_coordinates():
    elements = DiagramConverter().parse(
        r"\coordinate (a) at (2,0); \node (b) at (0,2) {B}; \draw (a) -- (b);"
    )
    path = elements[-1]
    assert path.points == [(100, 0), (0, -100)]


def test_empty_diagram_uses_default_box():
    converter = DiagramConverter()
    assert converter.bounding_box([]) == (0.0, 0.0, 200.0, 200.0)
    assert 'viewBox="0 0 200 200"' in converter.render("")


def test_svg_output():
    html = DiagramConverter().render(r"\draw[->] (0,0) -- (1,1); \node at (1,1) {$\alpha$};")
    assert html.startswith('<div class="tikz-diagram"><svg')
    assert 'class="tikz-svg"' in html
    assert 'marker-end="url(#tikz-arrow-1-1)"' in html
    assert ">α</text>" in html


@pytest.mark.parametrize(
    "value, expected",
    [("1", 1.0), ("10mm", 1.0), ("2cm", 2.0), ("-0.5", -0.5), ("wide", 0.0)],
)
def test_length_cm(value, expected):
    assert length_cm(value) == pytest.approx(expected)


def test_node_text_strips_markup():
    assert node_text(r"$\beta$ \textbf{x}") == "β x"
