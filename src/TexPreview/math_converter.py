from __future__ import annotations

import logging
import re
from typing import Callable, List

from .counters import CounterRegistry, LabelRegistry
from .scanner import (
    ALIGN_TAB,
    ROW_BREAK,
    extract_command,
    find_environment,
    find_matching,
    is_escaped,
    read_group,
    read_optional,
    replace_environments,
    split_top_level,
)
from .style import LINE_HEIGHT, StyleOptions

GREEK_LETTERS = {
    "alpha": "α", "beta": "β", "gamma": "γ", "delta": "δ",
    "epsilon": "ε", "varepsilon": "ε", "zeta": "ζ", "eta": "η",
    "theta": "θ", "vartheta": "ϑ", "iota": "ι", "kappa": "κ",
    "lambda": "λ", "mu": "μ", "nu": "ν", "xi": "ξ",
    "pi": "π", "varpi": "ϖ", "rho": "ρ", "varrho": "ϱ",
    "sigma": "σ", "varsigma": "ς", "tau": "τ", "upsilon": "υ",
    "phi": "φ", "varphi": "φ", "chi": "χ", "psi": "ψ",
    "omega": "ω", "Gamma": "Γ", "Delta": "Δ", "Theta": "Θ",
    "Lambda": "Λ", "Xi": "Ξ", "Pi": "Π", "Sigma": "Σ",
    "Upsilon": "Υ", "Phi": "Φ", "Psi": "Ψ", "Omega": "Ω",
}

OPERATORS = {
    "times": "×", "div": "÷", "pm": "±", "mp": "∓", "cdot": "·", "ast": "∗",
    "star": "⋆", "circ": "∘", "bullet": "•", "oplus": "⊕", "otimes": "⊗",
    "leq": "≤", "le": "≤", "geq": "≥", "ge": "≥", "neq": "≠", "ne": "≠",
    "approx": "≈", "equiv": "≡", "sim": "∼", "simeq": "≃", "cong": "≅",
    "propto": "∝", "ll": "≪", "gg": "≫", "mid": "∣", "parallel": "∥",
    "perp": "⊥", "angle": "∠", "infty": "∞", "partial": "∂", "nabla": "∇",
    "exists": "∃", "nexists": "∄", "forall": "∀", "neg": "¬", "lnot": "¬",
    "wedge": "∧", "land": "∧", "vee": "∨", "lor": "∨",
    "in": "∈", "notin": "∉", "ni": "∋", "subset": "⊂", "subseteq": "⊆",
    "subsetneq": "⊊", "supset": "⊃", "supseteq": "⊇", "cup": "∪", "cap": "∩",
    "setminus": "∖", "emptyset": "∅", "varnothing": "∅",
    "rightarrow": "→", "to": "→", "leftarrow": "←", "gets": "←",
    "leftrightarrow": "↔", "Rightarrow": "⇒", "Leftarrow": "⇐",
    "Leftrightarrow": "⇔", "implies": "⟹", "iff": "⟺", "mapsto": "↦",
    "longrightarrow": "⟶", "longleftarrow": "⟵", "uparrow": "↑",
    "downarrow": "↓", "langle": "⟨", "rangle": "⟩", "lfloor": "⌊",
    "rfloor": "⌋", "lceil": "⌈", "rceil": "⌉", "ldots": "…", "cdots": "⋯",
    "vdots": "⋮", "ddots": "⋱", "dots": "…", "prime": "′", "aleph": "ℵ",
    "hbar": "ℏ", "ell": "ℓ", "Re": "ℜ", "Im": "ℑ", "top": "⊤", "bot": "⊥",
    "grad": "∇", "curl": "∇×", "laplacian": "∇²", "degree": "°",
}

LARGE_OPERATORS = {
    "sum": "∑", "prod": "∏", "coprod": "∐", "int": "∫", "oint": "∮",
    "iint": "∬", "iiint": "∭", "bigcup": "⋃", "bigcap": "⋂",
    "bigoplus": "⨁", "bigotimes": "⨂",
}

SYMBOLS = {**GREEK_LETTERS, **OPERATORS, **LARGE_OPERATORS}

FUNCTIONS = {
    "sin", "cos", "tan", "cot", "sec", "csc", "arcsin", "arccos", "arctan",
    "sinh", "cosh", "tanh", "log", "ln", "lg", "exp", "lim", "liminf",
    "limsup", "max", "min", "sup", "inf", "det", "dim", "ker", "deg",
    "gcd", "arg", "Pr", "hom",
}

SPACING = {
    "quad": "math-quad",
    "qquad": "math-qquad",
    ";": "math-thickspace",
    ":": "math-medspace",
    ">": "math-medspace",
    ",": "math-thinspace",
    "!": "math-negthinspace",
    " ": "math-space",
}

FONT_COMMANDS = {
    "mathrm": "math-rm",
    "mathbf": "math-bf",
    "boldsymbol": "math-bf",
    "mathit": "math-it",
    "mathsf": "math-sf",
    "mathtt": "math-tt",
    "mathbb": "math-bb",
    "mathcal": "math-cal",
    "mathfrak": "math-frak",
}

TEXT_COMMANDS = {"text", "textrm", "textit", "textbf", "mbox", "hbox", "textnormal"}

DOUBLE_STRUCK = {"R": "ℝ", "N": "ℕ", "Z": "ℤ", "Q": "ℚ", "C": "ℂ", "P": "ℙ", "H": "ℍ"}

ACCENTS = {
    "hat": "\u0302",
    "widehat": "\u0302",
    "bar": "\u0304",
    "vec": "\u20d7",
    "dot": "\u0307",
    "ddot": "\u0308",
    "tilde": "\u0303",
    "widetilde": "\u0303",
}

DELIMITERS = {
    "(": "(", ")": ")", "[": "[", "]": "]", "|": "|", ".": "",
    "\\{": "{", "\\}": "}", "\\|": "‖", "\\langle": "⟨", "\\rangle": "⟩",
    "\\lfloor": "⌊", "\\rfloor": "⌋", "\\lceil": "⌈", "\\rceil": "⌉",
    "\\vert": "|", "\\Vert": "‖", "/": "/",
}

MATRIX_DELIMITERS = {
    "matrix": ("", ""),
    "smallmatrix": ("", ""),
    "pmatrix": ("(", ")"),
    "bmatrix": ("[", "]"),
    "Bmatrix": ("{", "}"),
    "vmatrix": ("|", "|"),
    "Vmatrix": ("‖", "‖"),
    "cases": ("{", ""),
    "aligned": ("", ""),
    "split": ("", ""),
    "gathered": ("", ""),
    "array": ("", ""),
}

DISPLAY_ENVIRONMENTS = [
    "equation", "equation*", "align", "align*", "gather", "gather*",
    "multline", "multline*", "eqnarray", "eqnarray*", "flalign", "flalign*",
    "alignat", "alignat*", "displaymath", "math",
]

_COMMAND = re.compile(r"\\([A-Za-z]+\*?|.)", re.DOTALL)
_ENTITY = re.compile(r"&(?:[a-zA-Z]+|#\d+);")
_ROW_SPACING = re.compile(r"^\*?\s*\[[^\]]*\]")
_NONUMBER = re.compile(r"\\(?:nonumber|notag)(?![A-Za-z])")
_SYMBOL_NAME = re.compile(r"\\([A-Za-z]+)(?![A-Za-z])")


def substitute_symbols(text: str) -> str:
    """Replace symbol commands by exact name; a second pass changes nothing."""

    def _sub(match: re.Match[str]) -> str:
        return SYMBOLS.get(match.group(1), match.group(0))

    return _SYMBOL_NAME.sub(_sub, text)


def split_rows(content: str) -> List[str]:
    rows = []
    for row in split_top_level(content, ROW_BREAK):
        row = _ROW_SPACING.sub("", row).strip()
        row = re.sub(r"^\\hline\s*", "", row).strip()
        if row:
            rows.append(row)
    return rows


def split_cells(row: str) -> List[str]:
    return [cell.strip() for cell in split_top_level(row, ALIGN_TAB)]


class MathConverter:
    """Convert LaTeX math to HTML markup and number display environments."""

    def __init__(
        self,
        counters: CounterRegistry | None = None,
        labels: LabelRegistry | None = None,
        style: StyleOptions | None = None,
    ) -> None:
        self.counters = counters if counters is not None else CounterRegistry()
        self.labels = labels if labels is not None else LabelRegistry()
        self.style = style or StyleOptions()
        self.counters.define("equation")

    # document level

    def process(self, text: str, protect: Callable[[str, bool], str] | None = None) -> str:
        """Convert every math environment and delimiter found in running text.

        `protect(html, block)` may swap each rendered fragment for a placeholder.
        """
        keep = protect or (lambda html, block: html)
        text = replace_environments(
            text,
            DISPLAY_ENVIRONMENTS,
            lambda env: keep(self.render_environment(env.name, env.content), True),
            options=False,
        )
        text = self._replace_delimited(text, "$$", "$$", lambda body: keep(self.render_display(body), True))
        text = self._replace_delimited(text, "\\[", "\\]", lambda body: keep(self.render_display(body), True))
        text = self._replace_delimited(text, "\\(", "\\)", lambda body: keep(self.render_inline(body), False))
        text = self._replace_delimited(text, "$", "$", lambda body: keep(self.render_inline(body), False))
        return text

    def _replace_delimited(self, text: str, opener: str, closer: str, render) -> str:
        parts: List[str] = []
        pos = 0
        while True:
            start = text.find(opener, pos)
            if start == -1:
                break
            if is_escaped(text, start):
                parts.append(text[pos : start + len(opener)])
                pos = start + len(opener)
                continue
            end = start + len(opener)
            while True:
                end = text.find(closer, end)
                if end == -1 or not is_escaped(text, end):
                    break
                end += len(closer)
            body = text[start + len(opener) : end] if end != -1 else ""
            if end == -1 or (opener == "$" and (not body.strip() or "\n\n" in body)):
                parts.append(text[pos : start + len(opener)])
                pos = start + len(opener)
                continue
            parts.append(text[pos:start])
            parts.append(render(body))
            pos = end + len(closer)
        parts.append(text[pos:])
        return "".join(parts)

    def render_inline(self, source: str) -> str:
        return f'<span class="math-inline">{self.convert(source)}</span>'

    def render_display(self, source: str) -> str:
        return (
            f'<div class="math-display"{self._line_height()}>'
            f'<div class="math-row"><span class="math-content">{self.convert(source.strip())}</span></div>'
            "</div>"
        )

    def _line_height(self) -> str:
        if self.style.line_height == LINE_HEIGHT:
            return ""
        return f' style="line-height: {self.style.line_height:g}"'

    def render_environment(self, name: str, content: str) -> str:
        """Render a display environment, numbering each numbered line."""
        base = name.rstrip("*")
        numbered = not name.endswith("*") and base not in {"displaymath", "math"}
        if base in {"equation", "displaymath", "math"}:
            rows = [content.strip()]
        elif base == "alignat":
            _, pos = read_group(content, 0)
            rows = split_rows(content[pos:])
        else:
            rows = split_rows(content)
        if not rows:
            return ""

        html_rows = []
        for index, row in enumerate(rows):
            row_numbered = numbered
            if base == "multline":
                row_numbered = numbered and index == len(rows) - 1
            if _NONUMBER.search(row):
                row_numbered = False
                row = _NONUMBER.sub("", row)
            tag, row = extract_command(row, "tag")
            label, row = extract_command(row, "label")
            while True:
                extra, row = extract_command(row, "label")
                if extra is None:
                    break
            number = None
            anchor = None
            if tag is not None:
                number = tag.strip()
                anchor = f"equation-{_slug(number)}"
            elif row_numbered:
                number = str(self.counters.step("equation"))
                anchor = f"equation-{number}"
            if label:
                if number is not None:
                    self.labels.register(label, number, "equation", anchor)
                else:
                    logging.warning("Label '%s' on an unnumbered equation line ignored", label)
            html_rows.append(self._render_row(row, base, number, anchor, index, len(rows)))
        return f'<div class="math-display math-{base}"{self._line_height()}>{"".join(html_rows)}</div>'

    def _render_row(self, row: str, base: str, number, anchor, index: int, total: int) -> str:
        classes = ["math-row"]
        if base == "multline":
            position = "first" if index == 0 else "last" if index == total - 1 else "middle"
            classes.append(f"multline-{position}")
        if base in {"equation", "gather", "multline", "displaymath", "math"}:
            body = f'<span class="math-content">{self.convert(row)}</span>'
        else:
            cells = split_cells(row)
            body = "".join(
                f'<span class="math-cell align-{"right" if i % 2 == 0 else "left"}">{self.convert(cell)}</span>'
                for i, cell in enumerate(cells)
            )
        id_attr = f' id="{anchor}"' if anchor else ""
        number_html = f'<span class="equation-number">({number})</span>' if number else ""
        return f'<div class="{" ".join(classes)}"{id_attr}>{body}{number_html}</div>'

    # expression level

    def convert(self, source: str) -> str:
        """Recursive-descent conversion of a math expression to inline markup."""
        out: List[str] = []
        i = 0
        n = len(source)
        while i < n:
            ch = source[i]
            if ch == "\\":
                match = _COMMAND.match(source, i)
                if not match:
                    i += 1
                    continue
                i = self._command(match.group(1), source, match.end(), out)
            elif ch in "^_":
                arg, i = self._take_arg(source, i + 1)
                tag = "sup" if ch == "^" else "sub"
                out.append(
                    f'<{tag} class="math-{tag}" style="font-size: {self.style.script_scale}em">'
                    f"{self.convert(arg)}</{tag}>"
                )
            elif ch == "{":
                close = find_matching(source, i)
                if close == -1:
                    i += 1
                    continue
                out.append(self.convert(source[i + 1 : close]))
                i = close + 1
            elif ch == "}":
                i += 1
            elif ch == "&":
                entity = _ENTITY.match(source, i)
                if entity:
                    out.append(entity.group(0))
                    i = entity.end()
                else:
                    out.append(" ")
                    i += 1
            elif ch == "<":
                out.append("&lt;")
                i += 1
            elif ch == ">":
                out.append("&gt;")
                i += 1
            elif ch == '"':
                out.append("&quot;")
                i += 1
            elif ch == "'":
                out.append("′")
                i += 1
            elif ch == "~":
                out.append("&nbsp;")
                i += 1
            elif ch in "\n\t":
                out.append(" ")
                i += 1
            else:
                out.append(ch)
                i += 1
        return "".join(out)

    def _take_arg(self, source: str, pos: int) -> tuple[str, int]:
        """A brace group, a single command token, or a single character."""
        while pos < len(source) and source[pos] == " ":
            pos += 1
        if pos >= len(source):
            return "", pos
        if source[pos] == "{":
            close = find_matching(source, pos)
            if close != -1:
                return source[pos + 1 : close], close + 1
        if source[pos] == "\\":
            match = _COMMAND.match(source, pos)
            if match:
                return match.group(0), match.end()
        entity = _ENTITY.match(source, pos)
        if entity:
            return entity.group(0), entity.end()
        return source[pos], pos + 1

    def _command(self, name: str, source: str, pos: int, out: List[str]) -> int:
        if name in LARGE_OPERATORS:
            out.append(f'<span class="math-op-large">{LARGE_OPERATORS[name]}</span>')
        elif name in SYMBOLS:
            out.append(SYMBOLS[name])
        elif name in FUNCTIONS:
            out.append(f'<span class="math-function">{name}</span>')
        elif name in SPACING:
            out.append(f'<span class="{SPACING[name]}"></span>')
        elif name in {"frac", "dfrac", "tfrac", "cfrac"}:
            numerator, pos = self._take_arg(source, pos)
            denominator, pos = self._take_arg(source, pos)
            out.append(
                '<span class="math-fraction">'
                f'<span class="math-numerator">{self.convert(numerator)}</span>'
                f'<span class="math-denominator">{self.convert(denominator)}</span>'
                "</span>"
            )
        elif name in {"binom", "dbinom", "tbinom"}:
            top, pos = self._take_arg(source, pos)
            bottom, pos = self._take_arg(source, pos)
            out.append(
                '<span class="math-binomial">(<span class="math-fraction">'
                f'<span class="binomial-top">{self.convert(top)}</span>'
                f'<span class="binomial-bottom">{self.convert(bottom)}</span>'
                "</span>)</span>"
            )
        elif name == "sqrt":
            index, pos = read_optional(source, pos)
            radicand, pos = self._take_arg(source, pos)
            index_html = f'<sup class="root-index">{self.convert(index)}</sup>' if index else ""
            out.append(
                f'<span class="math-root">{index_html}<span class="root-symbol">√</span>'
                f'<span class="radicand">{self.convert(radicand)}</span></span>'
            )
        elif name in TEXT_COMMANDS:
            text, pos = self._take_arg(source, pos)
            out.append(f'<span class="math-text">{text.replace("~", "&nbsp;")}</span>')
        elif name == "operatorname" or name == "operatorname*":
            text, pos = self._take_arg(source, pos)
            out.append(f'<span class="math-function">{self.convert(text)}</span>')
        elif name in FONT_COMMANDS:
            arg, pos = self._take_arg(source, pos)
            if name == "mathbb" and arg.strip() in DOUBLE_STRUCK:
                out.append(DOUBLE_STRUCK[arg.strip()])
            else:
                out.append(f'<span class="{FONT_COMMANDS[name]}">{self.convert(arg)}</span>')
        elif name in ACCENTS:
            arg, pos = self._take_arg(source, pos)
            inner = self.convert(arg)
            if len(inner) == 1:
                out.append(inner + ACCENTS[name])
            else:
                out.append(f'<span class="math-accent math-{name}">{inner}</span>')
        elif name in {"overline", "underline", "overbrace", "underbrace"}:
            arg, pos = self._take_arg(source, pos)
            out.append(f'<span class="math-{name}">{self.convert(arg)}</span>')
        elif name in {"left", "right", "middle"} or name.rstrip("lrm") in {"big", "Big", "bigg", "Bigg"}:
            pos = self._delimiter(source, pos, out)
        elif name == "begin":
            pos = self._inner_environment(source, pos, out)
        elif name in {"label", "tag"}:
            _, pos = read_group(source, pos)
        elif name in {"nonumber", "notag", "displaystyle", "textstyle", "scriptstyle", "limits", "nolimits", "hline"}:
            pass
        elif name in {"ref", "eqref"}:
            key, pos = read_group(source, pos)
            out.append(f"\\{name}{{{key or ''}}}")
        elif name in {"pdv", "dv"}:
            expr, pos = self._take_arg(source, pos)
            var, pos = self._take_arg(source, pos)
            symbol = "∂" if name == "pdv" else "d"
            out.append(
                '<span class="math-derivative"><span class="math-fraction">'
                f'<span class="math-numerator">{symbol}{self.convert(expr)}</span>'
                f'<span class="math-denominator">{symbol}{self.convert(var)}</span>'
                "</span></span>"
            )
        elif name in {"bra", "ket", "expval", "abs", "norm"}:
            arg, pos = self._take_arg(source, pos)
            left, right = {
                "bra": ("⟨", "|"),
                "ket": ("|", "⟩"),
                "expval": ("⟨", "⟩"),
                "abs": ("|", "|"),
                "norm": ("‖", "‖"),
            }[name]
            out.append(f'<span class="math-operator">{left}{self.convert(arg)}{right}</span>')
        elif name == "\\":
            out.append("<br>")
        elif len(name) == 1 and not name.isalpha():
            out.append({"{": "{", "}": "}", "|": "‖", "&": "&amp;", "<": "&lt;", ">": "&gt;"}.get(name, name))
        else:
            logging.debug("Unknown math command \\%s", name)
            out.append(f'<span class="math-command" data-command="{name}">{name}</span>')
        return pos

    def _delimiter(self, source: str, pos: int, out: List[str]) -> int:
        while pos < len(source) and source[pos] == " ":
            pos += 1
        token = None
        if source.startswith("\\", pos):
            match = _COMMAND.match(source, pos)
            if match:
                token = match.group(0)
                pos = match.end()
        elif pos < len(source):
            token = source[pos]
            pos += 1
        if token is None:
            return pos
        symbol = DELIMITERS.get(token)
        if symbol is None:
            symbol = self.convert(token)
        if symbol:
            out.append(f'<span class="math-delim math-large">{symbol}</span>')
        return pos

    def _inner_environment(self, source: str, pos: int, out: List[str]) -> int:
        name, _ = read_group(source, pos)
        begin = source.rfind("\\begin", 0, pos)
        match = find_environment(source, name or "", begin, options=False) if name else None
        if match is None or match.start != begin:
            return pos
        out.append(self.render_matrix(match.name, match.content))
        return match.end

    def render_matrix(self, name: str, content: str) -> str:
        """Matrices, cases and aligned blocks nested inside math."""
        if name == "array":
            _, pos = read_group(content, 0)
            content = content[pos:]
        left, right = MATRIX_DELIMITERS.get(name, ("", ""))
        rows_html = []
        for row in split_rows(content):
            cells = "".join(
                f'<td class="matrix-cell">{self.convert(cell)}</td>' for cell in split_cells(row)
            )
            rows_html.append(f'<tr class="matrix-row">{cells}</tr>')
        kind = "cases" if name == "cases" else "matrix"
        return (
            f'<span class="math-{kind} math-{name}">'
            f'<span class="matrix-delim matrix-left">{left}</span>'
            f'<table class="matrix-content">{"".join(rows_html)}</table>'
            f'<span class="matrix-delim matrix-right">{right}</span>'
            "</span>"
        )


def _slug(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "-", text).strip("-").lower() or "tag"
