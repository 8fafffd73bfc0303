"""Structural steps shared by every document class.

Sanitizing, body extraction, heading discovery, lists, inline command
resolution and paragraph wrapping are plain functions here; the renderers
call them in a fixed order and supply the class-specific pieces through
callbacks.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Mapping

from markdown_it.common.utils import escapeHtml

from .code_highlighter import render_inline_code
from .errors import MissingDocumentEnvironmentError
from .model import ListBlock, Paragraph
from .scanner import (
    EnvironmentMatch,
    find_environment,
    is_escaped,
    read_args,
    read_group,
    read_optional,
    replace_environments,
    split_items,
)

PROTECTED_ENVIRONMENTS = {
    "verbatim": "code",
    "verbatim*": "code",
    "Verbatim": "code",
    "lstlisting": "code",
    "minted": "code",
    "code": "code",
    "tikzpicture": "diagram",
    "markdown": "markdown",
    "comment": "comment",
}

SECTION_LEVELS = {
    "part": 0,
    "chapter": 1,
    "section": 2,
    "subsection": 3,
    "subsubsection": 4,
    "paragraph": 5,
    "subparagraph": 6,
}
MATTER_COMMANDS = ("frontmatter", "mainmatter", "backmatter", "appendix")
LIST_ENVIRONMENTS = {"itemize": "unordered", "enumerate": "ordered", "description": "description"}

_HEADING = re.compile(
    r"\\(part|chapter|section|subsection|subsubsection|paragraph|subparagraph)(\*?)(?![A-Za-z@])"
    r"|\\(frontmatter|mainmatter|backmatter|appendix)(?![A-Za-z@])"
)
_LABEL_AFTER = re.compile(r"\s*\\label\{([^{}]*)\}")
_PLACEHOLDER = re.compile("\x02([a-z]+):(\\d+)\x03")
_VERB = re.compile(r"\\verb\*?([^A-Za-z\s*])(.*?)\1")
_WHOLE_LINE_COMMENT = re.compile(r"(?m)^[ \t]*(?<!\\)%[^\n]*\n?")
_COMMENT = re.compile(r"(?<!\\)%[^\n]*")
_ANY_BEGIN = re.compile(r"\\begin\{([^{}]+)\}")
_INLINE_COMMAND = re.compile(r"\\([A-Za-z@]+\*?|.)", re.DOTALL)
_BLOCK_MARKUP = re.compile(
    r"</?(?:div|h[1-6]|ul|ol|dl|dt|dd|li|table|thead|tbody|tr|figure|figcaption|pre|blockquote|nav|section|"
    r"header|footer|article|aside|hr|p|svg)\b"
)
_TAG = re.compile(r"(<[^>]*>)")

CHAR_ESCAPES = {
    "&": "&amp;",
    "%": "%",
    "$": "$",
    "#": "#",
    "_": "_",
    "{": "{",
    "}": "}",
    " ": " ",
    ",": "&thinsp;",
    ";": "&ensp;",
    "!": "",
    "/": "",
    "-": "&shy;",
    "@": "",
    "\n": " ",
}


@dataclass
class ProtectedItem:
    kind: str
    name: str
    content: str
    options: str | None = None
    html: str | None = None
    block: bool = True


class ProtectedStore:
    """Content kept away from LaTeX processing until the final restore."""

    def __init__(self) -> None:
        self.items: List[ProtectedItem] = []

    def protect(
        self,
        kind: str,
        name: str,
        content: str,
        options: str | None = None,
        html: str | None = None,
        block: bool = True,
    ) -> str:
        self.items.append(ProtectedItem(kind, name, content, options, html, block))
        return f"\x02{kind}:{len(self.items) - 1}\x03"

    def render(self, kind: str, render: Callable[[ProtectedItem], str]) -> None:
        for item in self.items:
            if item.kind == kind and item.html is None:
                item.html = render(item)

    def transform(self, func: Callable[[str], str], kind: str | None = None) -> None:
        for item in self.items:
            if item.html is not None and kind in (None, item.kind):
                item.html = func(item.html)

    def is_block(self, index: int) -> bool:
        return 0 <= index < len(self.items) and self.items[index].block

    def restore(self, text: str) -> str:
        for _ in range(len(self.items) + 1):
            if "\x02" not in text:
                break
            text = _PLACEHOLDER.sub(self._lookup, text)
        return text

    def _lookup(self, match: re.Match[str]) -> str:
        index = int(match.group(2))
        if index >= len(self.items):
            return ""
        item = self.items[index]
        if item.html is not None:
            return item.html
        if item.kind == "comment":
            return ""
        return f'<pre class="verbatim">{escapeHtml(item.content)}</pre>'


def sanitize(text: str, store: ProtectedStore) -> str:
    """Protect verbatim-like content, strip comments, tidy whitespace, escape `<` and `>`."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = replace_environments(
        text,
        list(PROTECTED_ENVIRONMENTS),
        lambda env: store.protect(PROTECTED_ENVIRONMENTS[env.name], env.name, env.content, env.options),
    )
    text = _protect_verb(text, store)
    text = _WHOLE_LINE_COMMENT.sub("", text)
    text = _COMMENT.sub("", text)
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.replace("<", "&lt;").replace(">", "&gt;")


def _protect_verb(text: str, store: ProtectedStore) -> str:
    def _sub(match: re.Match[str]) -> str:
        if is_escaped(text, match.start()):
            return match.group(0)
        html = render_inline_code(match.group(2))
        return store.protect("verb", "verb", match.group(2), html=html, block=False)

    return _VERB.sub(_sub, text)


def strip_comments(text: str) -> str:
    """Comment stripping alone, for checks that do not need the full sanitize."""
    text = text.replace("\r\n", "\n")
    return _COMMENT.sub("", _WHOLE_LINE_COMMENT.sub("", text))


def extract_body(text: str) -> tuple[str, str]:
    """Split sanitized text into (preamble, body)."""
    begin = re.search(r"\\begin\{document\}", text)
    if not begin:
        raise MissingDocumentEnvironmentError("begin")
    end = re.search(r"\\end\{document\}", text[begin.end() :])
    if not end:
        raise MissingDocumentEnvironmentError("end")
    return text[: begin.start()], text[begin.end() : begin.end() + end.start()]


def slugify(title: str) -> str:
    text = _PLACEHOLDER.sub("", title)
    text = re.sub(r"\\[A-Za-z@]+\*?", " ", text)
    text = re.sub(r"&[a-zA-Z]+;|&#\d+;", " ", text)
    text = re.sub(r"[^0-9A-Za-z]+", "-", text).strip("-").lower()
    return text or "untitled"


class AnchorAllocator:
    """Stable ids: repeats of the same id get `-2`, `-3`, ... suffixes."""

    def __init__(self) -> None:
        self._seen: dict[str, int] = {}

    def allocate(self, base: str) -> str:
        count = self._seen.get(base, 0) + 1
        self._seen[base] = count
        return base if count == 1 else f"{base}-{count}"


def replace_headings(
    text: str,
    render: Callable[[str, bool, str | None, str | None, str | None], str],
) -> str:
    """Replace sectioning and matter commands in source order.

    `render(command, starred, title, short_title, label)` is called with
    `title=None` for the matter commands.
    """
    parts: List[str] = []
    pos = 0
    for match in _HEADING.finditer(text):
        if match.start() < pos or is_escaped(text, match.start()):
            continue
        if match.group(3):
            parts.append(text[pos : match.start()])
            parts.append(render(match.group(3), False, None, None, None))
            pos = match.end()
            continue
        command, starred = match.group(1), bool(match.group(2))
        short, cursor = read_optional(text, match.end())
        title, cursor = read_group(text, cursor)
        if title is None:
            logging.warning("\\%s without a title left as text", command)
            continue
        label = None
        label_match = _LABEL_AFTER.match(text, cursor)
        if label_match:
            label = label_match.group(1)
            cursor = label_match.end()
        parts.append(text[pos : match.start()])
        parts.append(render(command, starred, title.strip(), short, label))
        pos = cursor
    parts.append(text[pos:])
    return "".join(parts)


def render_lists(text: str, blocks: List | None = None) -> str:
    """Render itemize/enumerate/description, nested lists inside their items."""

    def _render(env: EnvironmentMatch) -> str:
        kind = LIST_ENVIRONMENTS[env.name]
        items = split_items(env.content)
        if blocks is not None:
            blocks.append(ListBlock(kind=kind, items=[body for _, body in items]))
        rendered = []
        for label, body in items:
            body = render_lists(body, blocks)
            if kind == "description":
                rendered.append(f'<dt class="description-term">{label or ""}</dt><dd class="description-desc">{body}</dd>')
            elif label is not None:
                rendered.append(
                    f'<li class="list-item custom-label">'
                    f'<span class="item-label">{label}</span> {body}</li>'
                )
            else:
                rendered.append(f'<li class="list-item">{body}</li>')
        if kind == "description":
            return f'<dl class="latex-description">{"".join(rendered)}</dl>'
        tag = "ol" if kind == "ordered" else "ul"
        return f'<{tag} class="latex-{env.name}">{"".join(rendered)}</{tag}>'

    return replace_environments(text, list(LIST_ENVIRONMENTS), _render, options=True)


def replace_remaining_environments(
    text: str, render: Callable[[str, str, str | None], str]
) -> str:
    """Replace every environment still in the text, outermost first."""
    parts: List[str] = []
    pos = 0
    while True:
        begin = _ANY_BEGIN.search(text, pos)
        if not begin:
            break
        if is_escaped(text, begin.start()):
            parts.append(text[pos : begin.end()])
            pos = begin.end()
            continue
        env = find_environment(text, begin.group(1), begin.start())
        if env is None or env.start != begin.start():
            parts.append(text[pos : begin.end()])
            pos = begin.end()
            continue
        parts.append(text[pos : env.start])
        parts.append(render(env.name, env.content, env.options))
        pos = env.end
    parts.append(text[pos:])
    return "".join(parts)


def resolve_inline(
    text: str,
    arity: Mapping[str, int],
    render: Callable[[str, List[str], str | None], str],
    raw: Iterable[str] = (),
) -> str:
    """Resolve inline commands left to right, then typographic shorthands.

    Arguments are resolved before `render` sees them, except for the
    commands named in `raw`. A command missing from `arity` takes at most
    one brace group.
    """
    raw = set(raw)
    out: List[str] = []
    pos = 0
    n = len(text)
    while pos < n:
        start = text.find("\\", pos)
        if start == -1:
            out.append(text[pos:])
            break
        out.append(text[pos:start])
        match = _INLINE_COMMAND.match(text, start)
        if match is None:
            out.append(text[start:])
            break
        name = match.group(1)
        cursor = match.end()
        if len(name) == 1 and not name.isalpha() and name != "@":
            if name == "\\":
                out.append("<br>")
                _, cursor = read_optional(text, cursor)
            else:
                out.append(CHAR_ESCAPES.get(name, name))
            pos = cursor
            continue
        optional = None
        args: List[str] = []
        if name in arity:
            if arity[name]:
                optional, cursor = read_optional(text, cursor)
            args, cursor = read_args(text, cursor, arity[name])
            if len(args) < arity[name]:
                logging.debug("\\%s with %d of %d arguments", name, len(args), arity[name])
        else:
            value, after = read_group(text, cursor)
            if value is not None:
                args, cursor = [value], after
        if name not in raw:
            args = [resolve_inline(arg, arity, render, raw) for arg in args]
        out.append(render(name, args, optional))
        pos = cursor
    return typography("".join(out))


def typography(text: str) -> str:
    """Dashes, ties and TeX quotes outside of markup."""
    pieces = _TAG.split(text)
    for index in range(0, len(pieces), 2):
        piece = pieces[index]
        piece = piece.replace("---", "—").replace("--", "–")
        piece = piece.replace("``", "“").replace("''", "”").replace("`", "‘")
        piece = re.sub(r"(?<![\\&])~", "&nbsp;", piece)
        pieces[index] = piece
    return "".join(pieces)


def wrap_paragraphs(text: str, store: ProtectedStore | None = None, blocks: List | None = None) -> str:
    """Wrap blank-line separated chunks in `<p>` unless they already are blocks."""
    out = []
    for chunk in re.split(r"\n[ \t]*\n", text):
        chunk = chunk.strip()
        if not chunk:
            continue
        if _is_block(chunk, store):
            out.append(chunk)
            continue
        if blocks is not None:
            blocks.append(Paragraph(text=chunk))
        out.append(f"<p>{chunk}</p>")
    return "\n".join(out)


def _is_block(chunk: str, store: ProtectedStore | None) -> bool:
    if _BLOCK_MARKUP.search(chunk) or "\\begin{" in chunk or "\\end{" in chunk:
        return True
    for match in _PLACEHOLDER.finditer(chunk):
        if store is None or store.is_block(int(match.group(2))):
            return True
    return False


def collect_footnotes(text: str, notes: List[str]) -> str:
    """Replace `\\footnote{..}` by numbered markers and append the notes."""
    parts: List[str] = []
    pos = 0
    for match in re.finditer(r"\\footnote(?![A-Za-z])", text):
        if match.start() < pos or is_escaped(text, match.start()):
            continue
        _, cursor = read_optional(text, match.end())
        note, cursor = read_group(text, cursor)
        if note is None:
            continue
        notes.append(note.strip())
        number = len(notes)
        parts.append(text[pos : match.start()])
        parts.append(
            f'<sup class="footnote-ref"><a href="#fn-{number}" id="fnref-{number}">{number}</a></sup>'
        )
        pos = cursor
    parts.append(text[pos:])
    return "".join(parts)


def render_footnotes(notes: List[str]) -> str:
    if not notes:
        return ""
    items = "".join(
        f'<li id="fn-{i}" class="footnote-item">{note} <a class="footnote-back" href="#fnref-{i}">↩</a></li>'
        for i, note in enumerate(notes, start=1)
    )
    return f'<section class="footnotes"><hr><ol class="footnote-list">{items}</ol></section>'
