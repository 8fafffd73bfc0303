from __future__ import annotations

import logging
import re
import textwrap
from dataclasses import dataclass
from re import Pattern
from typing import List

from markdown_it.common.utils import escapeHtml

from .counters import CounterRegistry, LabelRegistry
from .scanner import parse_keyval, read_group

_DQ = r"&quot;(?:\\.|(?!&quot;)[^\\\n])*&quot;"
_SQ = r"'(?:\\.|[^'\\\n])*'"
_BQ = r"`(?:\\.|[^`\\])*`"
_C_COMMENTS = (r"//[^\n]*", r"/\*[\s\S]*?\*/")
_ENTITY = re.compile(r"&(?:[a-zA-Z]+|#\d+);")
_NUMBER = re.compile(r"\b(?:0[xX][0-9a-fA-F]+|\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)\b")
_FUNCTION = re.compile(r"\b[A-Za-z_][A-Za-z0-9_]*(?=\s*\()")


@dataclass(frozen=True)
class LanguageRules:
    keywords: tuple[str, ...] = ()
    comments: tuple[str, ...] = ()
    strings: tuple[str, ...] = ()
    extras: tuple[tuple[str, str], ...] = ()
    ignore_case: bool = False
    functions: bool = True


LANGUAGES: dict[str, LanguageRules] = {
    "python": LanguageRules(
        keywords=(
            "def", "class", "if", "else", "elif", "for", "while", "import", "from", "as",
            "return", "try", "except", "with", "lambda", "yield", "async", "await",
            "global", "nonlocal", "pass", "break", "continue", "in", "is", "and", "or",
            "not", "True", "False", "None", "self", "cls", "finally", "raise", "assert",
            "del", "match", "case",
        ),
        comments=(r"#[^\n]*",),
        strings=(
            r"&quot;&quot;&quot;[\s\S]*?&quot;&quot;&quot;",
            r"'''[\s\S]*?'''",
            _DQ,
            _SQ,
        ),
        extras=((r"@[A-Za-z_][\w.]*", "decorator"),),
    ),
    "javascript": LanguageRules(
        keywords=(
            "const", "let", "var", "function", "if", "else", "for", "while", "do",
            "switch", "case", "default", "break", "continue", "return", "try", "catch",
            "finally", "throw", "new", "this", "typeof", "instanceof", "in", "of",
            "class", "extends", "import", "export", "from", "as", "async", "await",
            "yield", "debugger", "with", "delete", "void", "super", "static", "get",
            "set", "true", "false", "null", "undefined", "interface", "type", "enum",
        ),
        comments=_C_COMMENTS,
        strings=(_DQ, _SQ, _BQ),
    ),
    "java": LanguageRules(
        keywords=(
            "abstract", "assert", "boolean", "break", "byte", "case", "catch", "char",
            "class", "const", "continue", "default", "do", "double", "else", "enum",
            "extends", "final", "finally", "float", "for", "goto", "if", "implements",
            "import", "instanceof", "int", "interface", "long", "native", "new",
            "package", "private", "protected", "public", "return", "short", "static",
            "strictfp", "super", "switch", "synchronized", "this", "throw", "throws",
            "transient", "try", "void", "volatile", "while", "true", "false", "null",
            "var", "record",
        ),
        comments=_C_COMMENTS,
        strings=(_DQ, _SQ),
        extras=((r"@[A-Za-z_]\w*", "decorator"),),
    ),
    "cpp": LanguageRules(
        keywords=(
            "alignas", "alignof", "auto", "bool", "break", "case", "catch", "char",
            "class", "const", "constexpr", "const_cast", "continue", "decltype",
            "default", "delete", "do", "double", "dynamic_cast", "else", "enum",
            "explicit", "export", "extern", "false", "float", "for", "friend", "goto",
            "if", "inline", "int", "long", "mutable", "namespace", "new", "noexcept",
            "nullptr", "operator", "private", "protected", "public", "register",
            "reinterpret_cast", "return", "short", "signed", "sizeof", "static",
            "static_assert", "static_cast", "struct", "switch", "template", "this",
            "throw", "true", "try", "typedef", "typeid", "typename", "union",
            "unsigned", "using", "virtual", "void", "volatile", "while",
        ),
        comments=_C_COMMENTS,
        strings=(_DQ, _SQ),
        extras=((r"(?m)^[ \t]*#[ \t]*[A-Za-z]+", "preprocessor"),),
    ),
    "html": LanguageRules(
        comments=(r"&lt;!--[\s\S]*?--&gt;",),
        strings=(_DQ, _SQ),
        extras=(
            (r"&lt;/?[A-Za-z][\w:-]*", "tag"),
            (r"/?&gt;", "tag"),
            (r"\b[A-Za-z_:][\w:.-]*(?==)", "attribute"),
        ),
        functions=False,
    ),
    "css": LanguageRules(
        keywords=("important", "inherit", "initial", "none", "auto", "solid", "block", "flex", "grid"),
        comments=(r"/\*[\s\S]*?\*/",),
        strings=(_DQ, _SQ),
        extras=(
            (r"#[0-9a-fA-F]{3,8}\b", "number"),
            (r"[\w-]+(?=\s*:)", "property"),
            (r"@[\w-]+", "decorator"),
        ),
    ),
    "json": LanguageRules(
        keywords=("true", "false", "null"),
        strings=(_DQ,),
        functions=False,
    ),
    "sql": LanguageRules(
        keywords=(
            "SELECT", "FROM", "WHERE", "INSERT", "INTO", "VALUES", "UPDATE", "SET",
            "DELETE", "CREATE", "ALTER", "DROP", "TABLE", "INDEX", "VIEW", "DATABASE",
            "SCHEMA", "PRIMARY", "KEY", "FOREIGN", "REFERENCES", "NOT", "NULL",
            "UNIQUE", "DEFAULT", "AUTO_INCREMENT", "INT", "INTEGER", "VARCHAR", "TEXT",
            "BOOLEAN", "DATE", "TIME", "TIMESTAMP", "JOIN", "INNER", "LEFT", "RIGHT",
            "FULL", "OUTER", "ON", "AS", "ORDER", "BY", "GROUP", "HAVING", "LIMIT",
            "OFFSET", "UNION", "ALL", "DISTINCT", "AND", "OR", "IN", "EXISTS",
            "BETWEEN", "LIKE", "IS", "CASE", "WHEN", "THEN", "ELSE", "END",
        ),
        comments=(r"--[^\n]*", r"/\*[\s\S]*?\*/"),
        strings=(_SQ, _DQ),
        ignore_case=True,
    ),
    "bash": LanguageRules(
        keywords=(
            "if", "then", "else", "elif", "fi", "for", "while", "do", "done", "case",
            "esac", "function", "return", "exit", "break", "continue", "in", "local",
            "export", "source", "echo", "printf", "read", "cd", "set", "unset",
            "true", "false",
        ),
        comments=(r"(?<![$\w])#[^\n]*",),
        strings=(_DQ, _SQ),
        extras=((r"\$\{[^}\n]*\}|\$[A-Za-z_]\w*|\$[0-9#?@*$!]", "variable"),),
        functions=False,
    ),
    "latex": LanguageRules(
        comments=(r"(?<!\\)%[^\n]*",),
        extras=(
            (r"\\[A-Za-z@]+\*?", "keyword"),
            (r"\$[^$\n]*\$", "string"),
        ),
        functions=False,
    ),
    "default": LanguageRules(functions=False),
}

ALIASES = {
    "py": "python",
    "python3": "python",
    "js": "javascript",
    "jsx": "javascript",
    "ts": "javascript",
    "tsx": "javascript",
    "typescript": "javascript",
    "c": "cpp",
    "c++": "cpp",
    "cc": "cpp",
    "h": "cpp",
    "xml": "html",
    "xhtml": "html",
    "sh": "bash",
    "shell": "bash",
    "zsh": "bash",
    "console": "bash",
    "tex": "latex",
    "text": "default",
    "plain": "default",
    "none": "default",
}

_OPTION_LINE = re.compile(r"^(?:(?:bg-white|bg-black|copy-disable|numbers|title=\S+)\s*)+$")
_TAB_LINE = re.compile(r"^\{([\w+#-]+)(?::([^}]+))?\}$")


def normalize_language(name: str | None) -> str:
    key = (name or "").strip().lower()
    key = ALIASES.get(key, key)
    return key if key in LANGUAGES else "default"


def _classify(segments: List[tuple[str, str | None]], pattern: Pattern[str] | None, css: str):
    """Split every unclassified segment on `pattern` matches, tagging them `css`."""
    if pattern is None:
        return segments
    result: List[tuple[str, str | None]] = []
    for text, kind in segments:
        if kind is not None:
            result.append((text, kind))
            continue
        pos = 0
        for match in pattern.finditer(text):
            if match.end() == match.start():
                continue
            if match.start() > pos:
                result.append((text[pos : match.start()], None))
            result.append((match.group(0), css))
            pos = match.end()
        if pos < len(text):
            result.append((text[pos:], None))
    return result


def _comments_and_strings(text: str, rules: LanguageRules) -> List[tuple[str, str | None]]:
    """One left-to-right pass; the earliest comment or string wins."""
    parts = []
    if rules.comments:
        parts.append("(?P<comment>" + "|".join(f"(?:{c})" for c in rules.comments) + ")")
    if rules.strings:
        parts.append("(?P<string>" + "|".join(f"(?:{s})" for s in rules.strings) + ")")
    if not parts:
        return [(text, None)]
    pattern = re.compile("|".join(parts))
    segments: List[tuple[str, str | None]] = []
    pos = 0
    for match in pattern.finditer(text):
        if match.start() > pos:
            segments.append((text[pos : match.start()], None))
        segments.append((match.group(0), match.lastgroup))
        pos = match.end()
    if pos < len(text):
        segments.append((text[pos:], None))
    return segments


def highlight(code: str, language: str | None) -> str:
    """Escape `code` and wrap recognised tokens in `syntax-*` spans."""
    rules = LANGUAGES[normalize_language(language)]
    escaped = escapeHtml(code)
    segments = _comments_and_strings(escaped, rules)
    for pattern, css in rules.extras:
        segments = _classify(segments, re.compile(pattern), css)
    segments = _classify(segments, _ENTITY, "")
    segments = _classify(segments, _NUMBER, "number")
    if rules.keywords:
        keywords = re.compile(
            r"\b(?:" + "|".join(re.escape(k) for k in rules.keywords) + r")\b",
            re.IGNORECASE if rules.ignore_case else 0,
        )
        segments = _classify(segments, keywords, "keyword")
    if rules.functions:
        segments = _classify(segments, _FUNCTION, "function")
    return "".join(
        f'<span class="syntax-{kind}">{text}</span>' if kind else text for text, kind in segments
    )


class CodeConverter:
    """Render listing environments, inline code and tabbed code boxes."""

    def __init__(
        self,
        counters: CounterRegistry | None = None,
        labels: LabelRegistry | None = None,
        default_language: str = "text",
        copy_button: bool = True,
    ) -> None:
        self.counters = counters if counters is not None else CounterRegistry()
        self.labels = labels if labels is not None else LabelRegistry()
        self.default_language = default_language
        self.copy_button = copy_button
        self._boxes = 0

    def render_environment(self, name: str, content: str, options: str | None = None) -> str:
        if name == "code":
            return self.render_tabs(content)
        language = self.default_language
        settings = parse_keyval(options)
        if name == "minted":
            lang, pos = read_group(content, 0)
            if lang is not None:
                language = lang
                content = content[pos:]
        elif name in {"lstlisting", "Verbatim"}:
            language = str(settings.get("language", language))
        else:
            language = "text"
        caption = settings.get("caption")
        label = settings.get("label")
        numbers = settings.get("numbers") not in (None, "none") or "linenos" in settings
        return self.render_block(
            _trim_code(content),
            language,
            caption=caption if isinstance(caption, str) else None,
            label=label if isinstance(label, str) else None,
            line_numbers=numbers,
        )

    def render_block(
        self,
        code: str,
        language: str | None,
        caption: str | None = None,
        label: str | None = None,
        line_numbers: bool = False,
    ) -> str:
        lang = normalize_language(language)
        display = (language or "text").strip() or "text"
        anchor_attr = ""
        caption_html = ""
        if caption or label:
            number = str(self.counters.step("listing"))
            anchor = f"listing-{number}"
            anchor_attr = f' id="{anchor}"'
            if label:
                self.labels.register(label, number, "listing", anchor)
            if caption:
                caption_html = f'<div class="code-caption">Listing {number}: {escapeHtml(caption)}</div>'
        header = f'<span class="language-label">{escapeHtml(display)}</span>'
        if self.copy_button:
            header += '<button class="copy-btn" type="button">Copy</button>'
        gutter = ""
        if line_numbers:
            count = code.count("\n") + 1
            gutter = '<pre class="line-numbers">' + "\n".join(str(i) for i in range(1, count + 1)) + "</pre>"
        logging.debug("Highlighting %d chars of %s", len(code), lang)
        return (
            f'<div class="code-block language-{lang}"{anchor_attr}>'
            f'<div class="code-header">{header}</div>'
            f'<div class="code-body">{gutter}<pre class="code-content"><code class="language-{lang}">'
            f"{highlight(code, lang)}</code></pre></div>"
            f"{caption_html}</div>"
        )

    def render_tabs(self, content: str) -> str:
        """Multi-tab code box: `{lang}` or `{lang:title}` lines open a tab."""
        self._boxes += 1
        box = self._boxes
        background = "black"
        copy_enabled = self.copy_button
        title = ""
        numbers = False
        tabs: List[dict] = []
        for line in content.strip("\n").split("\n"):
            stripped = line.strip()
            tab = _TAB_LINE.match(stripped)
            if tab:
                tabs.append({"language": tab.group(1).lower(), "title": tab.group(2), "lines": []})
                continue
            if _OPTION_LINE.match(stripped):
                for token in stripped.split():
                    if token in {"bg-white", "bg-black"}:
                        background = token[3:]
                    elif token == "copy-disable":
                        copy_enabled = False
                    elif token == "numbers":
                        numbers = True
                    elif token.startswith("title="):
                        title = token[6:].strip("{}\"'")
                continue
            if not tabs:
                if not stripped:
                    continue
                tabs.append({"language": "default", "title": None, "lines": []})
            tabs[-1]["lines"].append(line)
        tabs = [t for t in tabs if "".join(t["lines"]).strip()]
        if not tabs:
            return ""

        theme = " white-bg" if background == "white" else ""
        parts = [f'<div class="code-box{theme}">']
        if title:
            parts.append(f'<div class="code-box-title">{escapeHtml(title)}</div>')
        parts.append('<div class="code-tabs">')
        for index, tab in enumerate(tabs):
            active = " active" if index == 0 else ""
            name = tab["title"] or tab["language"]
            parts.append(
                f'<button class="code-tab{active}" data-tab="code-{box}-{index + 1}">{escapeHtml(name)}</button>'
            )
        parts.append("</div>")
        parts.append('<div class="code-content">')
        for index, tab in enumerate(tabs):
            active = " active" if index == 0 else ""
            code = _trim_code("\n".join(tab["lines"]))
            header = f'<span class="code-title">{escapeHtml(tab["title"] or tab["language"])}</span>'
            if copy_enabled:
                header += '<button class="copy-btn" type="button">Copy</button>'
            gutter = ""
            if numbers:
                gutter = '<pre class="line-numbers">' + "\n".join(
                    str(i) for i in range(1, code.count("\n") + 2)
                ) + "</pre>"
            parts.append(
                f'<div id="code-{box}-{index + 1}" class="code-pane{active}">'
                f'<div class="code-header">{header}</div>'
                f'<div class="code-text">{gutter}<pre><code>{highlight(code, tab["language"])}</code></pre></div>'
                "</div>"
            )
        parts.append("</div></div>")
        return "".join(parts)


def render_inline_code(text: str) -> str:
    return f'<code class="inline-code">{escapeHtml(text)}</code>'


def _trim_code(code: str) -> str:
    """Drop the line break after `\\begin` and shared indentation."""
    lines = code.split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return textwrap.dedent("\n".join(lines))
