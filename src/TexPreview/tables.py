from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List

from .scanner import ALIGN_TAB, ROW_BREAK, read_args, read_group, split_top_level
from .style import StyleOptions, resolve_color

TABULAR_ENVIRONMENTS = ["tabular", "tabular*", "tabularx", "longtable"]

_RULE = re.compile(r"\s*\\(hline|toprule|midrule|bottomrule|cline\{[^}]*\}|cmidrule(?:\([^)]*\))?\{[^}]*\})")
_ROW_SPACING = re.compile(r"^\*?\s*\[[^\]]*\]")
_ALIGN = {"l": "left", "c": "center", "r": "right", "p": "left", "m": "left", "b": "left", "X": "left", "S": "center"}


@dataclass
class ColumnSpec:
    align: str = "left"
    border_left: bool = False
    border_right: bool = False
    width: str | None = None


@dataclass
class Cell:
    text: str
    colspan: int = 1
    rowspan: int = 1
    align: str | None = None
    color: str | None = None


@dataclass
class Row:
    cells: List[Cell]
    rule_above: bool = False
    rule_below: bool = False
    color: str | None = None


def _expand_repeats(spec: str) -> str:
    while True:
        match = re.search(r"\*\s*\{(\d+)\}", spec)
        if not match:
            return spec
        body, end = read_group(spec, match.end())
        if body is None:
            return spec
        spec = spec[: match.start()] + body * int(match.group(1)) + spec[end:]


def parse_colspec(spec: str) -> List[ColumnSpec]:
    """Column alignment and vertical rules from a tabular preamble."""
    spec = _expand_repeats(spec or "")
    columns: List[ColumnSpec] = []
    pending_border = False
    i = 0
    while i < len(spec):
        ch = spec[i]
        if ch == "|":
            pending_border = True
            i += 1
        elif ch in "@!>< ":
            _, end = read_group(spec, i + 1)
            i = end if end > i + 1 else i + 1
        elif ch in _ALIGN:
            column = ColumnSpec(align=_ALIGN[ch], border_left=pending_border)
            pending_border = False
            i += 1
            if ch in "pmb" or ch == "X":
                width, end = read_group(spec, i)
                if width is not None:
                    column.width = width
                    i = end
            columns.append(column)
        else:
            i += 1
    if pending_border and columns:
        columns[-1].border_right = True
    return columns


def _parse_cell(text: str) -> Cell:
    text = text.strip()
    cell = Cell(text=text)
    if text.startswith("\\multicolumn"):
        args, end = read_args(text, len("\\multicolumn"), 3)
        if len(args) == 3:
            columns = parse_colspec(args[1])
            cell = Cell(
                text=args[2].strip() + text[end:],
                colspan=max(int(args[0]) if args[0].strip().isdigit() else 1, 1),
                align=columns[0].align if columns else None,
            )
    if cell.text.startswith("\\multirow"):
        args, end = read_args(cell.text, len("\\multirow"), 3)
        if len(args) == 3:
            cell.rowspan = max(int(args[0]) if args[0].strip().isdigit() else 1, 1)
            cell.text = args[2].strip() + cell.text[end:]
    match = re.search(r"\\cellcolor(?:\[[^\]]*\])?\{([^}]*)\}", cell.text)
    if match:
        cell.color = resolve_color(match.group(1))
        cell.text = (cell.text[: match.start()] + cell.text[match.end() :]).strip()
    return cell


def parse_rows(content: str) -> List[Row]:
    rows: List[Row] = []
    rule_pending = False
    for chunk in split_top_level(content, ROW_BREAK):
        chunk = _ROW_SPACING.sub("", chunk)
        while True:
            rule = _RULE.match(chunk)
            if not rule:
                break
            rule_pending = True
            chunk = chunk[rule.end() :]
        color = None
        color_match = re.match(r"\s*\\rowcolor(?:\[[^\]]*\])?\{([^}]*)\}", chunk)
        if color_match:
            color = resolve_color(color_match.group(1))
            chunk = chunk[color_match.end() :]
        if not chunk.strip():
            continue
        cells = [_parse_cell(cell) for cell in split_top_level(chunk, ALIGN_TAB)]
        rows.append(Row(cells=cells, rule_above=rule_pending, color=color))
        rule_pending = False
    if rule_pending and rows:
        rows[-1].rule_below = True
    return rows


def _stripes(content: str) -> tuple[str, tuple[int, str, str] | None]:
    """Consume `\\rowcolors{start}{odd}{even}`."""
    match = re.search(r"\\rowcolors", content)
    if not match:
        return content, None
    args, end = read_args(content, match.end(), 3)
    if len(args) < 3 or not args[0].strip().isdigit():
        return content, None
    stripes = (int(args[0]), resolve_color(args[1], ""), resolve_color(args[2], ""))
    return content[: match.start()] + content[end:], stripes


def _row_color(index: int, stripes: tuple[int, str, str] | None, style: StyleOptions) -> str | None:
    if index in style.row_colors:
        return style.row_colors[index]
    if stripes and index >= stripes[0]:
        return stripes[1] if (index - stripes[0]) % 2 == 0 else stripes[2]
    return None


def render_tabular(name: str, content: str, style: StyleOptions | None = None) -> str:
    """Render a tabular-like environment body; the first row is the header."""
    style = style or StyleOptions()
    if name in {"tabular*", "tabularx"}:
        _, pos = read_group(content, 0)
        content = content[pos:]
    spec, pos = read_group(content, 0)
    if spec is None:
        logging.warning("%s without column specification", name)
        spec = ""
    else:
        content = content[pos:]
    content, stripes = _stripes(content)
    columns = parse_colspec(spec)
    rows = parse_rows(content)
    if not rows:
        return '<table class="latex-table"></table>'

    html_rows = []
    for index, row in enumerate(rows):
        tag = "th" if index == 0 else "td"
        row_styles = []
        if row.rule_above:
            row_styles.append(f"border-top: {style.border_style}")
        if row.rule_below:
            row_styles.append(f"border-bottom: {style.border_style}")
        color = row.color or _row_color(index + 1, stripes, style)
        if color:
            row_styles.append(f"background-color: {color}")
        row_attr = f' style="{"; ".join(row_styles)}"' if row_styles else ""
        cells_html = []
        col = 0
        for cell in row.cells:
            column = columns[col] if col < len(columns) else ColumnSpec()
            cell_styles = [f"text-align: {cell.align or column.align}"]
            if column.border_left:
                cell_styles.append(f"border-left: {style.border_style}")
            last = columns[min(col + cell.colspan - 1, len(columns) - 1)] if columns else ColumnSpec()
            if last.border_right:
                cell_styles.append(f"border-right: {style.border_style}")
            if column.width and cell.colspan == 1:
                cell_styles.append(f"width: {css_length(column.width)}")
            background = cell.color or style.column_colors.get(col + 1)
            if background:
                cell_styles.append(f"background-color: {background}")
            attrs = ""
            if cell.colspan > 1:
                attrs += f' colspan="{cell.colspan}"'
            if cell.rowspan > 1:
                attrs += f' rowspan="{cell.rowspan}"'
            cells_html.append(f'<{tag}{attrs} style="{"; ".join(cell_styles)}">{cell.text}</{tag}>')
            col += cell.colspan
        html_rows.append(f"<tr{row_attr}>{''.join(cells_html)}</tr>")

    head = f"<thead>{html_rows[0]}</thead>"
    body = f"<tbody>{''.join(html_rows[1:])}</tbody>" if len(html_rows) > 1 else ""
    return f'<table class="latex-table">{head}{body}</table>'


def css_length(value: str) -> str:
    """Translate `0.4\\textwidth` and TeX units to CSS."""
    value = value.strip()
    match = re.match(r"^([\d.]*)\s*\\(textwidth|linewidth|columnwidth|hsize)$", value)
    if match:
        factor = float(match.group(1) or 1)
        return f"{round(factor * 100, 2):g}%"
    match = re.match(r"^([\d.]+)\s*(cm|mm|in|pt|em|ex|px)$", value)
    if match:
        return f"{match.group(1)}{match.group(2)}"
    return "auto"
