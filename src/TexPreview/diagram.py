from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from typing import List

from .math_converter import substitute_symbols
from .model import DiagramElement, NodeElement, PathElement, ShapeElement
from .scanner import find_matching, parse_keyval, read_group, read_optional, split_top_level
from .style import COLORS, DIAGRAM_EMPTY_SIZE_PX, LINE_WIDTHS, StyleOptions, resolve_color

SVG_NS = "http://www.w3.org/2000/svg"

_ARROW = re.compile(r"^(<|>|latex|stealth|Stealth)?-(>|<|latex|stealth|Stealth)?$")
_LENGTH = re.compile(r"^\s*(-?[\d.]+)\s*(cm|mm|pt|in|em|ex)?\s*$")
_UNIT_CM = {"cm": 1.0, "mm": 0.1, "pt": 1 / 28.4528, "in": 2.54, "em": 0.35, "ex": 0.15, None: 1.0}
_DASHES = {
    "dashed": "4 2",
    "densely dashed": "3 1",
    "loosely dashed": "6 4",
    "dotted": "1 2",
    "densely dotted": "1 1",
    "loosely dotted": "1 4",
    "dash dot": "4 2 1 2",
}
_SKIPPED = {"tikzset", "tikzstyle", "usetikzlibrary", "pgfmathsetmacro", "definecolor", "begin", "end", "clip"}

CHAR_WIDTH_PX = 7
FONT_SIZE_PX = 12
NODE_PADDING_PX = 8


@dataclass
class _Style:
    stroke: str = "black"
    fill: str = "none"
    width: float = 0.4
    dash: str | None = None
    arrow_start: bool = False
    arrow_end: bool = False
    opacity: float | None = None
    text_color: str = "black"
    draw: bool = True
    scale: float = 1.0


@dataclass
class _Picture:
    style: _Style
    names: dict[str, tuple[float, float]]
    unit: float
    origin: tuple[float, float]


def length_cm(value: str, default: float = 0.0) -> float:
    """Parse a TeX length into source units (centimetres)."""
    match = _LENGTH.match(value or "")
    if not match:
        return default
    try:
        return float(match.group(1)) * _UNIT_CM[match.group(2)]
    except ValueError:
        return default


def _fmt(value: float) -> str:
    value = round(value, 2)
    if value == 0:
        value = 0.0
    return f"{value:.2f}".rstrip("0").rstrip(".")


class DiagramConverter:
    """Convert `tikzpicture` bodies to inline SVG."""

    def __init__(self, style: StyleOptions | None = None) -> None:
        self.style = style or StyleOptions()
        self._count = 0

    def render(self, content: str, options: str | None = None) -> str:
        self._count += 1
        elements = self.parse(content, options)
        logging.debug("Diagram %d: %d elements", self._count, len(elements))
        return f'<div class="tikz-diagram">{self.to_svg(elements)}</div>'

    def parse(self, content: str, options: str | None = None) -> List[DiagramElement]:
        settings = parse_keyval(options)
        base = _Style(scale=self.style.diagram_scale)
        base = self._apply_options(base, settings, "draw")
        picture = _Picture(
            style=base,
            names={},
            unit=self.style.diagram_unit,
            origin=self.style.diagram_origin,
        )
        elements: List[DiagramElement] = []
        content = re.sub(r"(?<!\\)%[^\n]*", "", content)
        self._statements(content, picture, elements)
        return elements

    def to_pixels(self, point: tuple[float, float], scale: float = 1.0) -> tuple[float, float]:
        unit = self.style.diagram_unit * scale
        origin_x, origin_y = self.style.diagram_origin
        return origin_x + point[0] * unit, origin_y - point[1] * unit

    # statements

    def _statements(self, content: str, picture: _Picture, elements: List[DiagramElement]) -> None:
        for statement in split_top_level(content, ";", "{}[]"):
            statement = statement.strip()
            if statement:
                self._statement(statement, picture, elements)

    def _statement(self, statement: str, picture: _Picture, elements: List[DiagramElement]) -> None:
        match = re.match(r"\\([A-Za-z]+)\*?", statement)
        if not match:
            logging.warning("Skipping diagram statement %r", statement[:40])
            return
        command = match.group(1)
        rest = statement[match.end() :]
        if command == "foreach":
            self._foreach(rest, picture, elements)
        elif command in {"draw", "path", "fill", "filldraw", "shade", "shadedraw"}:
            self._path(command, rest, picture, elements)
        elif command == "node":
            self._node_statement(rest, picture, elements)
        elif command == "coordinate":
            self._coordinate_statement(rest, picture)
        elif command in _SKIPPED:
            logging.debug("Ignoring \\%s in diagram", command)
        else:
            logging.warning("Unsupported diagram command \\%s", command)

    def _foreach(self, rest: str, picture: _Picture, elements: List[DiagramElement]) -> None:
        match = re.match(r"\s*((?:\\[A-Za-z]+/?)+)\s*in\s*", rest)
        if not match:
            logging.warning("Malformed \\foreach in diagram")
            return
        names = [name for name in match.group(1).split("/") if name]
        values, pos = read_group(rest, match.end())
        if values is None:
            return
        body = rest[pos:].strip()
        trailing = ""
        if body.startswith("{"):
            close = find_matching(body, 0)
            trailing = body[close + 1 :] if close != -1 else ""
            body = body[1:close] if close != -1 else body[1:]
        for value in _expand_list(values):
            parts = value.split("/")
            text = body
            for index, name in enumerate(names):
                replacement = parts[index].strip() if index < len(parts) else ""
                text = re.sub(re.escape(name) + r"(?![A-Za-z])", lambda _m: replacement, text)
            self._statements(text, picture, elements)
        if trailing.strip():
            self._statements(trailing, picture, elements)

    def _coordinate_statement(self, rest: str, picture: _Picture) -> None:
        _, pos = read_optional(rest, 0)
        name, pos = read_group(rest, pos, "(")
        at = re.match(r"\s*at\s*", rest[pos:])
        point = (0.0, 0.0)
        if at:
            spec, _ = read_group(rest, pos + at.end(), "(")
            if spec is not None:
                point = self._coordinate(spec, picture)
        if name:
            picture.names[name.strip()] = point

    def _node_statement(self, rest: str, picture: _Picture, elements: List[DiagramElement]) -> None:
        options, pos = read_optional(rest, 0)
        name = None
        point = (0.0, 0.0)
        while pos < len(rest):
            gap = re.match(r"\s*", rest[pos:]).end()
            pos += gap
            if rest.startswith("(", pos):
                value, pos = read_group(rest, pos, "(")
                name = (value or "").strip()
            elif rest.startswith("at", pos):
                spec, pos = read_group(rest, pos + 2, "(")
                if spec is not None:
                    point = self._coordinate(spec, picture)
            elif rest.startswith("[", pos):
                extra, pos = read_optional(rest, pos)
                options = ",".join(filter(None, [options, extra]))
            else:
                break
        text, _ = read_group(rest, pos)
        elements.append(self._make_node(options, text or "", point, picture))
        if name:
            picture.names[name] = point

    # paths

    def _path(self, command: str, rest: str, picture: _Picture, elements: List[DiagramElement]) -> None:
        options, pos = read_optional(rest, 0)
        settings = parse_keyval(options)
        style = self._command_style(command, picture.style)
        style = self._apply_options(style, settings, command)

        points: List[tuple[float, float]] = []
        current: tuple[float, float] | None = None
        pending_op: str | None = None
        pending_nodes: List[tuple[str | None, str]] = []
        shape_word: str | None = None
        in_controls = False
        closed = False

        def flush(is_closed: bool = False) -> None:
            if len(points) >= 2:
                elements.append(self._make_path(points, is_closed, style))
            points.clear()

        i = pos
        while i < len(rest):
            ch = rest[i]
            if ch.isspace():
                i += 1
                continue
            relative = ""
            if rest.startswith("++(", i):
                relative = "++"
            elif rest.startswith("+(", i):
                relative = "+"
            if relative or ch == "(":
                start = i + len(relative)
                close = find_matching(rest, start)
                if close == -1:
                    logging.warning("Unbalanced coordinate in diagram path")
                    break
                spec = rest[start + 1 : close]
                i = close + 1
                if in_controls:
                    continue
                point = self._coordinate(spec, picture)
                if relative and current is not None:
                    point = (current[0] + point[0], current[1] + point[1])
                if shape_word == "rectangle" and current is not None:
                    flush()
                    elements.append(self._make_rectangle(current, point, style))
                elif shape_word == "grid" and current is not None:
                    flush()
                    elements.extend(self._make_grid(current, point, style))
                elif pending_op is None or current is None:
                    flush()
                    points.append(point)
                else:
                    if pending_op == "-|":
                        points.append((point[0], current[1]))
                    elif pending_op == "|-":
                        points.append((current[0], point[1]))
                    if not points:
                        points.append(current)
                    points.append(point)
                    for node_options, node_text in pending_nodes:
                        middle = ((current[0] + point[0]) / 2, (current[1] + point[1]) / 2)
                        elements.append(self._make_node(node_options, node_text, middle, picture, style))
                    pending_nodes.clear()
                shape_word = None
                pending_op = None
                if relative != "+":
                    current = point
                continue
            if rest.startswith("--", i) or rest.startswith("-|", i) or rest.startswith("|-", i):
                pending_op = rest[i : i + 2]
                i += 2
                continue
            if rest.startswith("..", i):
                in_controls = not in_controls
                pending_op = "--"
                i += 2
                continue
            if ch in "[{":
                _, end = read_group(rest, i, ch)
                i = end if end > i else i + 1
                continue
            word = re.match(r"[A-Za-z]+", rest[i:])
            if not word:
                i += 1
                continue
            keyword = word.group(0)
            i += len(keyword)
            if keyword == "cycle":
                if points:
                    closed = True
                    first = points[0]
                    flush(is_closed=True)
                    current = first
                pending_op = None
            elif keyword in {"rectangle", "grid"}:
                if keyword == "grid":
                    _, i = read_optional(rest, i)
                shape_word = keyword
            elif keyword in {"circle", "ellipse"}:
                shape_options, i = read_optional(rest, i)
                size, i = read_group(rest, i, "(")
                if current is not None:
                    elements.append(self._make_round(keyword, current, shape_options, size, style))
            elif keyword == "arc":
                arc_options, i = read_optional(rest, i)
                spec, i = read_group(rest, i, "(")
                if current is not None:
                    arc_points = self._arc_points(current, arc_options, spec)
                    if arc_points:
                        if not points:
                            points.append(current)
                        points.extend(arc_points)
                        current = arc_points[-1]
            elif keyword == "node":
                node_options, i = read_optional(rest, i)
                _, i = read_group(rest, i, "(")
                text, i = read_group(rest, i)
                if pending_op is not None:
                    pending_nodes.append((node_options, text or ""))
                elif current is not None:
                    elements.append(self._make_node(node_options, text or "", current, picture, style))
            elif keyword == "coordinate":
                name, i = read_group(rest, i, "(")
                if name and current is not None:
                    picture.names[name.strip()] = current
            elif keyword == "to":
                _, i = read_optional(rest, i)
                pending_op = "--"
            elif keyword in {"controls", "and"}:
                continue
            else:
                logging.debug("Ignoring path keyword %s", keyword)
        flush(is_closed=False)
        if closed:
            logging.debug("Closed path drawn with \\%s", command)

    def _command_style(self, command: str, base: _Style) -> _Style:
        if command in {"fill", "shade"}:
            color = base.fill if base.fill != "none" else base.stroke
            return replace(base, fill=color, draw=False)
        if command in {"filldraw", "shadedraw"}:
            color = base.fill if base.fill != "none" else base.stroke
            return replace(base, fill=color, draw=True)
        if command == "path":
            return replace(base, draw=False)
        return base

    def _apply_options(self, style: _Style, settings: dict, command: str) -> _Style:
        changes: dict = {}
        for key, value in settings.items():
            arrow = _ARROW.match(key) if value is True else None
            if arrow and (arrow.group(1) or arrow.group(2)):
                changes["arrow_start"] = bool(arrow.group(1))
                changes["arrow_end"] = bool(arrow.group(2))
            elif key in LINE_WIDTHS and value is True:
                changes["width"] = LINE_WIDTHS[key]
            elif key == "line width" and isinstance(value, str):
                changes["width"] = length_cm(value, style.width) * 28.4528
            elif key in _DASHES and value is True:
                changes["dash"] = _DASHES[key]
            elif key == "solid":
                changes["dash"] = None
            elif key == "draw":
                changes["draw"] = value != "none"
                if isinstance(value, str) and value != "none":
                    changes["stroke"] = resolve_color(value)
            elif key == "color" and isinstance(value, str):
                changes["stroke"] = changes["text_color"] = resolve_color(value)
                if command in {"fill", "shade"}:
                    changes["fill"] = resolve_color(value)
            elif key == "fill":
                changes["fill"] = resolve_color(value) if isinstance(value, str) else style.stroke
            elif key == "text" and isinstance(value, str):
                changes["text_color"] = resolve_color(value)
            elif key in {"opacity", "fill opacity", "draw opacity"} and isinstance(value, str):
                try:
                    changes["opacity"] = float(value)
                except ValueError:
                    logging.warning("Ignoring opacity %r", value)
            elif key == "scale" and isinstance(value, str):
                try:
                    changes["scale"] = style.scale * float(value)
                except ValueError:
                    logging.warning("Ignoring scale %r", value)
            elif value is True and key.split("!", 1)[0] in COLORS:
                color = resolve_color(key)
                changes["stroke"] = color
                changes["text_color"] = color
                if command in {"fill", "shade"}:
                    changes["fill"] = color
        return replace(style, **changes)

    # geometry

    def _coordinate(self, spec: str, picture: _Picture) -> tuple[float, float]:
        spec = spec.strip()
        if "," in spec:
            x, y = spec.split(",", 1)
            return length_cm(x), length_cm(y)
        if ":" in spec:
            angle, radius = spec.split(":", 1)
            try:
                theta = math.radians(float(angle))
            except ValueError:
                theta = 0.0
            r = length_cm(radius)
            return r * math.cos(theta), r * math.sin(theta)
        name = spec.split(".", 1)[0].strip()
        if name in picture.names:
            return picture.names[name]
        logging.warning("Unknown diagram coordinate '%s'", spec)
        return 0.0, 0.0

    def _arc_points(
        self, current: tuple[float, float], options: str | None, spec: str | None
    ) -> List[tuple[float, float]]:
        if spec:
            parts = spec.split(":")
            if len(parts) != 3:
                return []
            start, end, radius = parts
        else:
            settings = parse_keyval(options)
            start = str(settings.get("start angle", 0))
            end = str(settings.get("end angle", 90))
            radius = str(settings.get("radius", 1))
        try:
            a0, a1 = math.radians(float(start)), math.radians(float(end))
        except ValueError:
            return []
        r = length_cm(radius, 1.0)
        cx = current[0] - r * math.cos(a0)
        cy = current[1] - r * math.sin(a0)
        steps = max(int(abs(a1 - a0) / (math.pi / 24)), 1)
        return [
            (cx + r * math.cos(a0 + (a1 - a0) * k / steps), cy + r * math.sin(a0 + (a1 - a0) * k / steps))
            for k in range(1, steps + 1)
        ]

    def _make_path(self, points: List[tuple[float, float]], closed: bool, style: _Style) -> PathElement:
        return PathElement(
            points=[self.to_pixels(p, style.scale) for p in points],
            closed=closed,
            stroke=style.stroke if style.draw else "none",
            fill=style.fill if closed else "none",
            width=style.width,
            dash=style.dash,
            arrow_start=style.arrow_start and not closed,
            arrow_end=style.arrow_end and not closed,
            opacity=style.opacity,
        )

    def _make_rectangle(self, a: tuple[float, float], b: tuple[float, float], style: _Style) -> ShapeElement:
        (x1, y1), (x2, y2) = self.to_pixels(a, style.scale), self.to_pixels(b, style.scale)
        return ShapeElement(
            kind="rectangle",
            position=(min(x1, x2), min(y1, y2)),
            dimensions=(abs(x2 - x1), abs(y2 - y1)),
            stroke=style.stroke if style.draw else "none",
            fill=style.fill,
            width=style.width,
            dash=style.dash,
            opacity=style.opacity,
        )

    def _make_grid(self, a: tuple[float, float], b: tuple[float, float], style: _Style) -> List[PathElement]:
        lines: List[PathElement] = []
        grid_style = replace(style, arrow_start=False, arrow_end=False)
        x0, x1 = sorted((a[0], b[0]))
        y0, y1 = sorted((a[1], b[1]))
        x = math.ceil(x0)
        while x <= x1 + 1e-9:
            lines.append(self._make_path([(x, y0), (x, y1)], False, grid_style))
            x += 1
        y = math.ceil(y0)
        while y <= y1 + 1e-9:
            lines.append(self._make_path([(x0, y), (x1, y)], False, grid_style))
            y += 1
        return lines

    def _make_round(
        self, kind: str, center: tuple[float, float], options: str | None, size: str | None, style: _Style
    ) -> ShapeElement:
        settings = parse_keyval(options)
        if kind == "circle":
            radius = length_cm(size, 0.5) if size else length_cm(str(settings.get("radius", "0.5")), 0.5)
            rx = ry = radius
        else:
            if size and "and" in size:
                first, second = size.split("and", 1)
                rx, ry = length_cm(first, 1.0), length_cm(second, 0.6)
            else:
                rx = length_cm(str(settings.get("x radius", "1")), 1.0)
                ry = length_cm(str(settings.get("y radius", "0.6")), 0.6)
        unit = self.style.diagram_unit * style.scale
        return ShapeElement(
            kind=kind,
            position=self.to_pixels(center, style.scale),
            dimensions=(rx * unit, ry * unit),
            stroke=style.stroke if style.draw else "none",
            fill=style.fill,
            width=style.width,
            dash=style.dash,
            opacity=style.opacity,
        )

    def _make_node(
        self,
        options: str | None,
        text: str,
        point: tuple[float, float],
        picture: _Picture,
        base: _Style | None = None,
    ) -> NodeElement:
        settings = parse_keyval(options)
        style = self._apply_options(replace(base or picture.style, draw=False, fill="none"), settings, "node")
        label = node_text(text)
        shape = None
        for candidate in ("circle", "ellipse", "rectangle"):
            if settings.get(candidate) is True or settings.get("shape") == candidate:
                shape = candidate
        if shape is None and ("draw" in settings or "fill" in settings):
            shape = "rectangle"
        unit = self.style.diagram_unit * style.scale
        width = max(len(label) * CHAR_WIDTH_PX + 2 * NODE_PADDING_PX, FONT_SIZE_PX + 2 * NODE_PADDING_PX)
        height = FONT_SIZE_PX + 2 * NODE_PADDING_PX
        for key in ("minimum size", "minimum width"):
            if isinstance(settings.get(key), str):
                width = max(width, length_cm(settings[key]) * unit)
        for key in ("minimum size", "minimum height"):
            if isinstance(settings.get(key), str):
                height = max(height, length_cm(settings[key]) * unit)
        if shape == "circle":
            width = height = max(width, height)

        x, y = self.to_pixels(point, style.scale)
        anchor = "middle"
        for key, value in settings.items():
            words = key.split()
            if not words or words[0] not in {"above", "below", "left", "right"}:
                continue
            offset = length_cm(value, 0.0) * unit if isinstance(value, str) else 0.0
            if "above" in words:
                y -= height / 2 + offset
            if "below" in words:
                y += height / 2 + offset
            if "left" in words:
                x -= width / 2 + offset
            if "right" in words:
                x += width / 2 + offset
        return NodeElement(
            position=(x, y),
            text=label,
            shape=shape,
            dimensions=(width, height),
            stroke=style.stroke if "draw" in settings else "none",
            fill=style.fill if shape else "none",
            anchor=anchor,
            color=style.text_color,
        )

    # output

    def bounding_box(self, elements: List[DiagramElement]) -> tuple[float, float, float, float]:
        xs: List[float] = []
        ys: List[float] = []
        for element in elements:
            if isinstance(element, PathElement):
                xs.extend(p[0] for p in element.points)
                ys.extend(p[1] for p in element.points)
            elif isinstance(element, ShapeElement):
                x, y = element.position
                w, h = element.dimensions
                if element.kind == "rectangle":
                    xs.extend((x, x + w))
                    ys.extend((y, y + h))
                else:
                    xs.extend((x - w, x + w))
                    ys.extend((y - h, y + h))
            elif isinstance(element, NodeElement):
                x, y = element.position
                w, h = element.dimensions
                xs.extend((x - w / 2, x + w / 2))
                ys.extend((y - h / 2, y + h / 2))
        if not xs:
            return 0.0, 0.0, float(DIAGRAM_EMPTY_SIZE_PX), float(DIAGRAM_EMPTY_SIZE_PX)
        margin = self.style.diagram_margin
        return (
            min(xs) - margin,
            min(ys) - margin,
            max(xs) - min(xs) + 2 * margin,
            max(ys) - min(ys) + 2 * margin,
        )

    def to_svg(self, elements: List[DiagramElement]) -> str:
        x, y, width, height = self.bounding_box(elements)
        svg = ET.Element(
            "svg",
            {
                "xmlns": SVG_NS,
                "class": "tikz-svg",
                "width": _fmt(width),
                "height": _fmt(height),
                "viewBox": f"{_fmt(x)} {_fmt(y)} {_fmt(width)} {_fmt(height)}",
            },
        )
        defs = ET.SubElement(svg, "defs")
        markers: dict[str, str] = {}

        def marker(color: str) -> str:
            if color not in markers:
                marker_id = f"tikz-arrow-{self._count}-{len(markers) + 1}"
                node = ET.SubElement(
                    defs,
                    "marker",
                    {
                        "id": marker_id,
                        "viewBox": "0 0 10 10",
                        "refX": "9",
                        "refY": "5",
                        "markerWidth": "6",
                        "markerHeight": "6",
                        "orient": "auto-start-reverse",
                    },
                )
                ET.SubElement(node, "path", {"d": "M 0 0 L 10 5 L 0 10 z", "fill": color})
                markers[color] = marker_id
            return f"url(#{markers[color]})"

        for element in elements:
            if isinstance(element, PathElement):
                d = " ".join(
                    f"{'M' if index == 0 else 'L'} {_fmt(px)} {_fmt(py)}"
                    for index, (px, py) in enumerate(element.points)
                )
                if element.closed:
                    d += " Z"
                attrs = _paint(element.stroke, element.fill, element.width, element.dash, element.opacity)
                attrs["d"] = d
                attrs["stroke-linecap"] = "round"
                attrs["stroke-linejoin"] = "round"
                if element.arrow_end:
                    attrs["marker-end"] = marker(element.stroke)
                if element.arrow_start:
                    attrs["marker-start"] = marker(element.stroke)
                ET.SubElement(svg, "path", attrs)
            elif isinstance(element, ShapeElement):
                attrs = _paint(element.stroke, element.fill, element.width, element.dash, element.opacity)
                px, py = element.position
                w, h = element.dimensions
                if element.kind == "rectangle":
                    attrs.update({"x": _fmt(px), "y": _fmt(py), "width": _fmt(w), "height": _fmt(h)})
                    ET.SubElement(svg, "rect", attrs)
                elif element.kind == "circle":
                    attrs.update({"cx": _fmt(px), "cy": _fmt(py), "r": _fmt(w)})
                    ET.SubElement(svg, "circle", attrs)
                else:
                    attrs.update({"cx": _fmt(px), "cy": _fmt(py), "rx": _fmt(w), "ry": _fmt(h)})
                    ET.SubElement(svg, "ellipse", attrs)
            elif isinstance(element, NodeElement):
                px, py = element.position
                w, h = element.dimensions
                if element.shape:
                    attrs = _paint(element.stroke, element.fill, 0.4, None, None)
                    if element.shape == "circle":
                        attrs.update({"cx": _fmt(px), "cy": _fmt(py), "r": _fmt(w / 2)})
                        ET.SubElement(svg, "circle", attrs)
                    elif element.shape == "ellipse":
                        attrs.update({"cx": _fmt(px), "cy": _fmt(py), "rx": _fmt(w / 2), "ry": _fmt(h / 2)})
                        ET.SubElement(svg, "ellipse", attrs)
                    else:
                        attrs.update(
                            {"x": _fmt(px - w / 2), "y": _fmt(py - h / 2), "width": _fmt(w), "height": _fmt(h), "rx": "2"}
                        )
                        ET.SubElement(svg, "rect", attrs)
                if element.text:
                    label = ET.SubElement(
                        svg,
                        "text",
                        {
                            "x": _fmt(px),
                            "y": _fmt(py),
                            "text-anchor": element.anchor,
                            "dominant-baseline": "middle",
                            "font-size": str(FONT_SIZE_PX),
                            "fill": element.color,
                        },
                    )
                    label.text = element.text
        return ET.tostring(svg, encoding="unicode")


def _paint(stroke: str, fill: str, width: float, dash: str | None, opacity: float | None) -> dict[str, str]:
    attrs = {"stroke": stroke, "fill": fill, "stroke-width": _fmt(width)}
    if dash:
        attrs["stroke-dasharray"] = dash
    if opacity is not None:
        attrs["opacity"] = _fmt(opacity)
    return attrs


def node_text(text: str) -> str:
    """Plain-text rendering of a node label (math symbols become Unicode)."""
    text = text.replace("$", "")
    text = substitute_symbols(text)
    text = text.replace("\\\\", " ")
    text = re.sub(r"\\[A-Za-z]+\*?", "", text)
    text = text.replace("{", "").replace("}", "")
    return re.sub(r"\s+", " ", text).strip()


def _expand_list(values: str) -> List[str]:
    """`{1,...,4}` and `{0,0.5,...,2}` style lists."""
    items = [item.strip() for item in values.split(",") if item.strip()]
    if "..." not in items:
        return items
    index = items.index("...")
    if index == 0 or index == len(items) - 1:
        return [item for item in items if item != "..."]
    try:
        last = float(items[index + 1])
        first = float(items[index - 1])
        step = first - float(items[index - 2]) if index >= 2 else (1.0 if last >= first else -1.0)
    except ValueError:
        return [item for item in items if item != "..."]
    if step == 0:
        return items[:index]
    expanded = items[: index - 1]
    value = first
    while (step > 0 and value <= last + 1e-9) or (step < 0 and value >= last - 1e-9):
        expanded.append(_fmt(value))
        value += step
    return expanded + items[index + 2 :]
