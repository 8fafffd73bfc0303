from __future__ import annotations

import logging
import re
from typing import List

from markdown_it.common.utils import escapeHtml

from .counters import CounterRegistry, LabelRegistry
from .model import FloatBlock
from .scanner import (
    EnvironmentMatch,
    extract_command,
    parse_keyval,
    read_args,
    read_group,
    replace_commands,
    replace_environments,
)
from .style import StyleOptions
from .tables import TABULAR_ENVIRONMENTS, css_length, render_tabular

FLOAT_ENVIRONMENTS = ["figure", "figure*", "table", "table*", "algorithm", "algorithm*", "wrapfigure", "wraptable"]
SUBFLOAT_ENVIRONMENTS = ["subfigure", "subtable"]

KIND_NAMES = {
    "figure": "Figure",
    "subfigure": "Figure",
    "table": "Table",
    "subtable": "Table",
    "algorithm": "Algorithm",
    "listing": "Listing",
    "equation": "Equation",
    "part": "Part",
    "chapter": "Chapter",
    "section": "Section",
    "subsection": "Section",
    "subsubsection": "Section",
    "paragraph": "Paragraph",
    "appendix": "Appendix",
    "item": "Item",
    "footnote": "Footnote",
}

_ALGORITHMIC_COMMAND = re.compile(
    r"\\(State|Statex|If|ElsIf|Else|EndIf|For|ForAll|EndFor|While|EndWhile|Repeat|Until|"
    r"Loop|EndLoop|Return|Require|Ensure|Input|Output|Comment|Function|EndFunction|"
    r"Procedure|EndProcedure|Call)(?![A-Za-z])"
)
_OPENERS = {"If", "For", "ForAll", "While", "Repeat", "Loop", "Function", "Procedure"}
_CLOSERS = {"EndIf", "EndFor", "EndWhile", "Until", "EndLoop", "EndFunction", "EndProcedure"}


def subfigure_letter(index: int) -> str:
    """1 -> a, 26 -> z, 27 -> aa: bijective base 26."""
    letters = ""
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(97 + remainder) + letters
    return letters


def render_graphics(path: str, options: str | None = None) -> str:
    settings = parse_keyval(options)
    styles = []
    for key in ("width", "height"):
        value = settings.get(key)
        if isinstance(value, str):
            styles.append(f"{key}: {css_length(value)}")
    scale = settings.get("scale")
    if isinstance(scale, str):
        try:
            styles.append(f"width: {float(scale) * 100:g}%")
        except ValueError:
            logging.warning("Ignoring non-numeric image scale %r", scale)
    angle = settings.get("angle")
    if isinstance(angle, str):
        styles.append(f"transform: rotate({angle.strip()}deg)")
    style_attr = f' style="{"; ".join(styles)}"' if styles else ""
    src = escapeHtml(path.strip())
    return f'<img class="latex-image" src="{src}" alt="{src}"{style_attr}>'


def render_algorithmic(content: str, numbered: bool = True) -> str:
    """Pseudocode lines with indentation and line numbers."""
    lines: List[tuple[int, str, bool]] = []
    depth = 0
    matches = list(_ALGORITHMIC_COMMAND.finditer(content))
    for index, match in enumerate(matches):
        command = match.group(1)
        end = matches[index + 1].start() if index + 1 < len(matches) else len(content)
        args, pos = read_args(content, match.end(), 2 if command in {"Function", "Procedure", "Call"} else 1)
        if command in {"If", "ElsIf", "For", "ForAll", "While", "Until", "Comment", "Function", "Procedure", "Call"}:
            rest = content[pos:end].strip()
            arg = args[0].strip() if args else ""
        else:
            rest = content[match.end() : end].strip()
            arg = ""
        if command in _CLOSERS or command in {"Else", "ElsIf"}:
            depth = max(depth - 1, 0)
        if command == "Comment":
            comment = f'<span class="algorithm-comment">&#9655; {arg}</span>'
            if lines:
                d, text, num = lines[-1]
                lines[-1] = (d, f"{text} {comment}", num)
            else:
                lines.append((depth, comment, False))
            continue
        text = _algorithmic_line(command, arg, args, rest)
        lines.append((depth, text, numbered and command not in {"Require", "Ensure", "Input", "Output", "Statex"}))
        if command in _OPENERS or command in {"Else", "ElsIf"}:
            depth += 1

    html = ['<div class="algorithmic">']
    number = 0
    for depth, text, has_number in lines:
        marker = ""
        if has_number:
            number += 1
            marker = f'<span class="line-number">{number}:</span>'
        html.append(
            f'<div class="algorithm-line" style="padding-left: {depth * 1.5}em">{marker}{text}</div>'
        )
    html.append("</div>")
    return "".join(html)


def _algorithmic_line(command: str, arg: str, args: List[str], rest: str) -> str:
    if command in {"State", "Statex"}:
        return rest
    if command == "If":
        return f"<strong>if</strong> {arg} <strong>then</strong> {rest}".rstrip()
    if command == "ElsIf":
        return f"<strong>else if</strong> {arg} <strong>then</strong> {rest}".rstrip()
    if command == "Else":
        return f"<strong>else</strong> {rest}".rstrip()
    if command in {"For", "ForAll", "While"}:
        keyword = {"For": "for", "ForAll": "for all", "While": "while"}[command]
        return f"<strong>{keyword}</strong> {arg} <strong>do</strong> {rest}".rstrip()
    if command == "Repeat":
        return "<strong>repeat</strong>"
    if command == "Until":
        return f"<strong>until</strong> {arg}"
    if command == "Loop":
        return "<strong>loop</strong>"
    if command == "Return":
        return f"<strong>return</strong> {rest}".rstrip()
    if command in {"Require", "Ensure", "Input", "Output"}:
        return f"<strong>{command}:</strong> {rest}".rstrip()
    if command in {"Function", "Procedure"}:
        params = args[1] if len(args) > 1 else ""
        return f'<strong>{command.lower()}</strong> <span class="algorithm-name">{arg}</span>({params}) {rest}'.rstrip()
    if command == "Call":
        params = args[1] if len(args) > 1 else ""
        return f'<span class="algorithm-name">{arg}</span>({params}) {rest}'.rstrip()
    # EndIf, EndFor, ...
    return f"<strong>end {command[3:].lower()}</strong>"


class FloatConverter:
    """Numbered figures, tables and algorithms with captions and labels."""

    def __init__(
        self,
        counters: CounterRegistry | None = None,
        labels: LabelRegistry | None = None,
        style: StyleOptions | None = None,
    ) -> None:
        self.counters = counters if counters is not None else CounterRegistry()
        self.labels = labels if labels is not None else LabelRegistry()
        self.style = style or StyleOptions()
        self.blocks: List[FloatBlock] = []
        for kind in ("figure", "table", "algorithm"):
            self.counters.define(kind)
        self.counters.define("subfigure", parent="figure")
        self.counters.define("subtable", parent="table")

    def process(self, text: str) -> str:
        """Render every float, standalone tabular and algorithmic block in source order."""
        names = FLOAT_ENVIRONMENTS + TABULAR_ENVIRONMENTS + ["algorithmic"]
        return replace_environments(text, names, self._dispatch)

    def _dispatch(self, env: EnvironmentMatch) -> str:
        if env.name in TABULAR_ENVIRONMENTS:
            return render_tabular(env.name, env.content, self.style)
        if env.name == "algorithmic":
            return render_algorithmic(env.content)
        return self.render_float(env)

    def render_body(self, content: str) -> str:
        """Graphics, tabulars and algorithmic blocks inside a float body."""
        content = re.sub(r"\\(centering|raggedright|raggedleft)(?![A-Za-z])\s*", "", content)
        names = TABULAR_ENVIRONMENTS + ["algorithmic", "center"]

        def _render(env: EnvironmentMatch) -> str:
            if env.name == "algorithmic":
                return render_algorithmic(env.content)
            if env.name == "center":
                return f'<div class="center">{self.render_body(env.content)}</div>'
            return render_tabular(env.name, env.content, self.style)

        content = replace_environments(content, names, _render)
        return replace_commands(content, "includegraphics", lambda args, opt: render_graphics(args[0], opt))

    def render_float(self, env: EnvironmentMatch) -> str:
        kind = env.name.rstrip("*")
        content = env.content
        placement = env.options
        classes = []
        if kind.startswith("wrap"):
            side, pos = read_group(content, 0)
            _, pos = read_group(content, pos)
            content = content[pos:]
            kind = kind[4:]
            classes.append(f"wrap-{'right' if (side or 'r').strip() in 'rRoO' else 'left'}")
        number = str(self.counters.step(kind))
        anchor = f"{kind}-{number}"
        centered = bool(re.search(r"\\centering(?![A-Za-z])", content))

        content = replace_environments(
            content, SUBFLOAT_ENVIRONMENTS, lambda sub: self._render_subfloat(sub, number, anchor)
        )
        content = replace_commands(
            content,
            "subfloat",
            lambda args, opt: self._render_subfloat_command(args[0], opt, number, anchor),
        )
        caption, content = extract_command(content, "caption")
        label, content = extract_command(content, "label")
        if label:
            self.labels.register(label, number, kind, anchor)
        body = self.render_body(content).strip()

        name = KIND_NAMES.get(kind, kind.title())
        if caption is not None and caption.strip():
            caption_html = f'<figcaption class="{kind}-caption">{name} {number}: {caption.strip()}</figcaption>'
        else:
            logging.warning("%s %s has no caption", name, number)
            caption_html = f'<figcaption class="{kind}-caption caption-missing">{name} {number}</figcaption>'

        classes.insert(0, f"float-{kind}")
        if placement:
            classes.append(f"placement-{re.sub(r'[^a-zA-Z]', '', placement)}")
        if centered:
            classes.append("centered")
        if env.name.endswith("*"):
            classes.append("double-column")
        self.blocks.append(
            FloatBlock(
                kind=kind,
                caption=caption,
                label=label,
                placement=placement,
                body=body,
                number=number,
                id=anchor,
            )
        )
        logging.debug("Rendered %s %s", kind, number)
        parts = [caption_html, body] if kind in {"table", "algorithm"} else [body, caption_html]
        return f'<figure class="{" ".join(classes)}" id="{anchor}">{"".join(parts)}</figure>'

    def _render_subfloat(self, env: EnvironmentMatch, parent_number: str, parent_anchor: str) -> str:
        width, pos = read_group(env.content, 0)
        content = env.content[pos:] if width is not None else env.content
        caption, content = extract_command(content, "caption")
        label, content = extract_command(content, "label")
        return self._subfloat_html(env.name, content, caption, label, width, parent_number, parent_anchor)

    def _render_subfloat_command(self, body: str, caption: str | None, parent_number: str, parent_anchor: str) -> str:
        label, body = extract_command(body, "label")
        if label is None and caption:
            label, caption = extract_command(caption, "label")
        kind = "subtable" if parent_anchor.startswith("table") else "subfigure"
        return self._subfloat_html(kind, body, caption, label, None, parent_number, parent_anchor)

    def _subfloat_html(
        self,
        kind: str,
        content: str,
        caption: str | None,
        label: str | None,
        width: str | None,
        parent_number: str,
        parent_anchor: str,
    ) -> str:
        letter = subfigure_letter(self.counters.step(kind))
        anchor = f"{parent_anchor}-{letter}"
        if label:
            self.labels.register(label, f"{parent_number}{letter}", kind, anchor, parent=parent_number)
        style_attr = f' style="width: {css_length(width)}"' if width else ""
        caption_text = f"({letter}) {caption.strip()}" if caption and caption.strip() else f"({letter})"
        return (
            f'<div class="{kind}" id="{anchor}"{style_attr}>{self.render_body(content).strip()}'
            f'<div class="{kind}-caption">{caption_text}</div></div>'
        )

    def list_of(self, kind: str) -> str:
        """Markup for `\\listoffigures` and `\\listoftables`."""
        title = "List of Figures" if kind == "figure" else "List of Tables"
        entries = [
            f'<li class="lof-entry"><a href="#{block.id}">{KIND_NAMES[kind]} {block.number}'
            f'{": " + block.caption.strip() if block.caption else ""}</a></li>'
            for block in self.blocks
            if block.kind == kind
        ]
        return f'<nav class="list-of-{kind}s"><h2>{title}</h2><ul>{"".join(entries)}</ul></nav>'


_REFERENCE = re.compile(r"\\(ref|eqref|pageref|autoref|cref|Cref|nameref|vref)\*?\{([^{}]*)\}")


def resolve_references(text: str, labels: LabelRegistry) -> str:
    """Replace reference commands; unknown keys stay visible as `[key]`."""

    def _one(command: str, key: str) -> str:
        entry = labels.resolve(key)
        if entry is None:
            logging.warning("Unresolved reference '%s'", key)
            return f'<span class="cross-ref ref-unresolved">[{escapeHtml(key)}]</span>'
        if command == "eqref":
            text = f"({entry.number})"
        elif command == "pageref":
            text = "[p.?]"
        elif command in {"autoref", "cref", "Cref", "vref"}:
            name = KIND_NAMES.get(entry.kind, entry.kind.title())
            text = f"{name}&nbsp;{entry.number}"
        else:
            text = entry.number
        return f'<a class="cross-ref" href="#{entry.anchor}">{text}</a>'

    def _sub(match: re.Match[str]) -> str:
        command = match.group(1)
        keys = [k.strip() for k in match.group(2).split(",") if k.strip()]
        if not keys:
            return ""
        return ", ".join(_one(command, key) for key in keys)

    return _REFERENCE.sub(_sub, text)
