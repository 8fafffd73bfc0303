from __future__ import annotations

import bisect
import datetime
import logging
import re
from dataclasses import dataclass, field
from typing import ClassVar, Dict, List

from markdown_it.common.utils import escapeHtml

from . import structure
from .code_highlighter import CodeConverter
from .config import RenderConfig
from .counters import CounterRegistry, LabelRegistry
from .diagram import DiagramConverter
from .errors import EmptyDocumentError, MissingDocumentClassError
from .floats import FloatConverter, render_graphics, resolve_references
from .markdown_block import MarkdownConverter
from .math_converter import MathConverter
from .model import Block, EnvironmentBlock, Heading, RenderContext, SourceDocument, TocEntry
from .scanner import (
    EnvironmentMatch,
    extract_command,
    parse_keyval,
    read_group,
    read_optional,
    replace_commands,
    replace_environments,
    split_top_level,
)
from .structure import SECTION_LEVELS, AnchorAllocator, ProtectedStore
from .style import resolve_color
from .tables import css_length

DEFAULT_TITLE = "Untitled Document"
DEFAULT_AUTHOR = "Unknown Author"

THEOREM_ENVIRONMENTS = {
    "theorem": "Theorem",
    "lemma": "Lemma",
    "proposition": "Proposition",
    "corollary": "Corollary",
    "definition": "Definition",
    "example": "Example",
    "remark": "Remark",
    "note": "Note",
    "conjecture": "Conjecture",
    "claim": "Claim",
    "exercise": "Exercise",
    "problem": "Problem",
    "solution": "Solution",
}

COMMON_OPTIONS = {
    "twocolumn": "two-column",
    "onecolumn": "one-column",
    "twoside": "two-side",
    "oneside": "one-side",
    "draft": "draft",
    "final": "final",
    "landscape": "landscape",
    "titlepage": "title-page",
    "notitlepage": "no-title-page",
}

# inline commands with their number of brace arguments
BASE_COMMANDS = {
    "textbf": 1, "textit": 1, "emph": 1, "textsl": 1, "underline": 1, "texttt": 1,
    "textsc": 1, "textsf": 1, "textrm": 1, "textup": 1, "textmd": 1, "textnormal": 1,
    "mbox": 1, "hbox": 1, "text": 1, "textsuperscript": 1, "textsubscript": 1,
    "url": 1, "href": 2, "textcolor": 2, "colorbox": 2, "fcolorbox": 3, "fbox": 1, "framebox": 1,
    "today": 0, "LaTeX": 0, "TeX": 0, "ldots": 0, "dots": 0, "textbackslash": 0,
    "S": 0, "P": 0, "copyright": 0, "textregistered": 0, "texttrademark": 0,
    "dag": 0, "ddag": 0, "textbullet": 0, "quad": 0, "qquad": 0, "newblock": 0,
    "noindent": 0, "indent": 0, "par": 0, "vspace": 1, "hspace": 1,
    "smallskip": 0, "medskip": 0, "bigskip": 0, "centering": 0, "raggedright": 0,
    "raggedleft": 0, "hfill": 0, "vfill": 0, "newline": 0, "linebreak": 0,
    "newpage": 0, "clearpage": 0, "cleardoublepage": 0, "pagebreak": 0, "maketitle": 0,
    "label": 1, "cite": 1, "citep": 1, "citet": 1, "nocite": 1,
    "gls": 1, "Gls": 1, "glspl": 1, "Glspl": 1, "acrshort": 1, "acrlong": 1, "acrfull": 1,
    "item": 0, "caption": 1, "includegraphics": 1, "input": 1, "include": 1,
    "and": 0, "thanks": 1, "color": 1,
    "tiny": 0, "scriptsize": 0, "footnotesize": 0, "small": 0, "normalsize": 0,
    "large": 0, "Large": 0, "LARGE": 0, "huge": 0, "Huge": 0, "bfseries": 0,
    "itshape": 0, "ttfamily": 0, "rmfamily": 0, "sffamily": 0, "scshape": 0,
    "normalfont": 0, "makeindex": 0, "makeglossaries": 0,
}
RAW_COMMANDS = {
    "url", "href", "label", "cite", "citep", "citet", "nocite", "gls", "Gls", "glspl", "Glspl",
    "acrshort", "acrlong", "acrfull", "includegraphics", "input", "include", "textcolor",
    "colorbox", "fcolorbox", "color", "vspace", "hspace",
}
_WRAPPERS = {
    "textbf": ("<strong>", "</strong>"),
    "textit": ("<em>", "</em>"),
    "emph": ("<em>", "</em>"),
    "textsl": ('<em class="slanted">', "</em>"),
    "underline": ("<u>", "</u>"),
    "texttt": ('<code class="inline-code">', "</code>"),
    "textsc": ('<span class="small-caps">', "</span>"),
    "textsf": ('<span class="sans-serif">', "</span>"),
    "textsuperscript": ("<sup>", "</sup>"),
    "textsubscript": ("<sub>", "</sub>"),
    "fbox": ('<span class="fbox">', "</span>"),
    "framebox": ('<span class="fbox">', "</span>"),
}
_SYMBOLS = {
    "LaTeX": '<span class="latex-logo">LaTeX</span>',
    "TeX": '<span class="latex-logo">TeX</span>',
    "ldots": "…",
    "dots": "…",
    "textbackslash": "\\",
    "S": "§",
    "P": "¶",
    "copyright": "©",
    "textregistered": "®",
    "texttrademark": "™",
    "dag": "†",
    "ddag": "‡",
    "textbullet": "•",
    "quad": "&emsp;",
    "qquad": "&emsp;&emsp;",
    "newblock": " ",
    "newline": "<br>",
    "linebreak": "<br>",
    "par": "\n\n",
    "and": ", ",
}
_PAGE_BREAKS = {"newpage", "clearpage", "cleardoublepage", "pagebreak"}
_CITE_COMMANDS = {"cite", "citep", "citet"}
_GLOSSARY_COMMANDS = {"gls", "Gls", "glspl", "Glspl", "acrshort", "acrlong", "acrfull"}
_HEADING_TAG = re.compile(r'<h\d class="latex-(\w+)[^"]*" id="[^"]*" data-number="([^"]*)"')
_LEADING_LABEL = re.compile(r"^\s*\\label\{([^{}]*)\}")
_BIBITEM = re.compile(r"\\bibitem(?![A-Za-z])")
_DECLARATIONS = ("title", "author", "date")


def to_roman(number: int) -> str:
    values = [
        (1000, "M"), (900, "CM"), (500, "D"), (400, "CD"), (100, "C"), (90, "XC"),
        (50, "L"), (40, "XL"), (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I"),
    ]
    result = ""
    for value, letters in values:
        while number >= value:
            result += letters
            number -= value
    return result


def to_letter(number: int) -> str:
    return chr(64 + number) if 1 <= number <= 26 else str(number)


def today(config: RenderConfig | None = None) -> str:
    if config and config.date:
        return config.date
    date = datetime.date.today()
    return f"{date:%B} {date.day}, {date.year}"


def extract_metadata(text: str, default_date: str) -> dict[str, str]:
    """Title, author and date from `\\title`, `\\author`, `\\date` (brace aware)."""
    title, _ = extract_command(text, "title")
    author, _ = extract_command(text, "author")
    date, _ = extract_command(text, "date")
    return {
        "title": title.strip() if title is not None and title.strip() else DEFAULT_TITLE,
        "author": author.strip() if author is not None and author.strip() else DEFAULT_AUTHOR,
        "date": date.strip() if date is not None else default_date,
    }


def chapter_heading_html(
    command: str, level: int, number: str | None, title: str, anchor: str, appendix: bool
) -> str:
    """Chapter and part headings of the classes that have chapters."""
    number_attr = f' data-number="{number}"' if number else ""
    label = ""
    if number:
        prefix = "Part" if command == "part" else "Appendix" if appendix else "Chapter"
        label = f'<span class="{command}-label">{prefix} {number}</span>'
    return (
        f'<h{level} class="latex-{command} {command}-title" id="{anchor}"{number_attr}>'
        f'{label}<span class="{command}-name">{title}</span></h{level}>'
    )


@dataclass
class RenderState:
    """Everything one conversion mutates; rebuilt for every parse."""

    counters: CounterRegistry = field(default_factory=CounterRegistry)
    labels: LabelRegistry = field(default_factory=LabelRegistry)
    store: ProtectedStore = field(default_factory=ProtectedStore)
    anchors: AnchorAllocator = field(default_factory=AnchorAllocator)
    blocks: List[Block] = field(default_factory=list)
    toc: List[TocEntry] = field(default_factory=list)
    footnotes: List[str] = field(default_factory=list)
    citations: Dict[str, str] = field(default_factory=dict)
    index_terms: List[tuple[str, str]] = field(default_factory=list)
    glossary: Dict[str, dict] = field(default_factory=dict)
    glossary_used: set = field(default_factory=set)
    theorems: Dict[str, tuple[str, str | None, str | None]] = field(default_factory=dict)
    theorem_scopes: Dict[str, str] = field(default_factory=dict)
    theorem_prefixes: Dict[str, str] = field(default_factory=dict)
    matter: str = "main"
    appendix: bool = False


class BaseRenderer:
    """Shared processing skeleton; document classes override the hooks."""

    name: ClassVar[str] = "base"
    display_name: ClassVar[str] = "Document"
    HIERARCHY: ClassVar[tuple[str, ...]] = ("section", "subsection", "subsubsection", "paragraph", "subparagraph")
    NUMBER_DEPTH: ClassVar[int] = 3
    TOC_LEVEL: ClassVar[int] = 4
    CLASS_OPTIONS: ClassVar[dict[str, str]] = {}
    COMMANDS: ClassVar[dict[str, int]] = {}
    bibliography_title: ClassVar[str] = "References"
    contents_title: ClassVar[str] = "Contents"

    def __init__(
        self,
        options: dict | None = None,
        config: RenderConfig | None = None,
        context: RenderContext | None = None,
    ) -> None:
        self.options = dict(options or {})
        self.config = config or RenderConfig()
        self.context = context or RenderContext(theme=self.config.theme)
        self.style = self.config.style_options()
        self.class_name = self.name
        self.commands = {**BASE_COMMANDS, **self.COMMANDS}
        self.source = ""
        self.metadata: dict[str, str] = {}
        self.document: SourceDocument | None = None
        self.state = RenderState()

    # lifecycle

    def initialize(self, source: str) -> "BaseRenderer":
        self.source = source or ""
        self.state = RenderState()
        self.metadata = extract_metadata(structure.strip_comments(self.source), today(self.config))
        self.metadata["documentClass"] = self.class_name
        return self

    def validate(self) -> None:
        if not self.source.strip():
            raise EmptyDocumentError()
        if not re.search(r"\\documentclass(?![A-Za-z])", self.source):
            raise MissingDocumentClassError()

    def parse_document(self) -> str:
        self.validate()
        self.state = RenderState()
        self._setup_converters()
        text = structure.sanitize(self.source, self.state.store)
        preamble, body = structure.extract_body(text)
        metadata = extract_metadata(preamble + body, today(self.config))
        self.document = SourceDocument(
            text=text,
            document_class=self.class_name,
            options=dict(self.options),
            **metadata,
        )
        self._read_declarations(preamble)
        body = self._read_declarations(body)
        logging.debug("%s: body of %d chars", self.name, len(body))

        body = self.process_title(body)
        body = structure.replace_headings(body, self.render_heading)
        body = self.process_theorems(body)
        self.state.store.render("diagram", lambda item: self.diagrams.render(item.content, item.options))
        body = self.floats.process(body)
        body = self.process_math(body)
        self.state.store.render(
            "code", lambda item: self.code.render_environment(item.name, item.content, item.options)
        )
        self.state.store.render("markdown", lambda item: self.markdown.render(item.content))
        body = self.process_bibliography(body)
        body = self.process_index(body)
        body = self.process_glossary(body)
        body = self.process_contents(body)
        body = self.resolve_references(body)
        body = structure.collect_footnotes(body, self.state.footnotes)
        body = self.process_environments(body)
        body += structure.render_footnotes(self.state.footnotes)
        body = self.inline(body)
        body = structure.wrap_paragraphs(body, self.state.store, self.state.blocks)
        body = self.state.store.restore(body)
        logging.debug(
            "%s: %d blocks, %d labels", self.name, len(self.state.blocks), len(self.state.labels)
        )
        return self.wrap_document(body)

    def _setup_converters(self) -> None:
        state = self.state
        for index, command in enumerate(self.HIERARCHY):
            parent = self.HIERARCHY[index - 1] if index else None
            state.counters.define(command, parent=parent)
        state.counters.define("part")
        state.counters.define("footnote")
        self.math = MathConverter(state.counters, state.labels, self.style)
        self.floats = FloatConverter(state.counters, state.labels, self.style)
        self.code = CodeConverter(
            state.counters,
            state.labels,
            default_language=self.config.default_language,
            copy_button=self.config.copy_button,
        )
        self.diagrams = DiagramConverter(self.style)
        self.markdown = MarkdownConverter(self.math, self.code)
        state.theorems = {name: (title, name, None) for name, title in THEOREM_ENVIRONMENTS.items()}

    def _read_declarations(self, text: str) -> str:
        """Consume metadata, theorem and glossary declarations."""
        for name in _DECLARATIONS:
            text = replace_commands(text, name, lambda args, opt: "")
        text = re.sub(r"\\documentclass(\[[^\]]*\])?\{[^}]*\}", "", text)
        text = re.sub(r"\\usepackage(\[[^\]]*\])?\{[^}]*\}", "", text)
        text = self._read_newtheorem(text)
        text = replace_commands(text, "newglossaryentry", self._glossary_entry, nargs=2, optional=False)
        text = replace_commands(text, "newacronym", self._acronym, nargs=3)
        return text

    def _read_newtheorem(self, text: str) -> str:
        parts: List[str] = []
        pos = 0
        for match in re.finditer(r"\\newtheorem(\*?)(?![A-Za-z])", text):
            if match.start() < pos:
                continue
            name, cursor = read_group(text, match.end())
            shared, cursor = read_optional(text, cursor)
            title, cursor = read_group(text, cursor)
            within, cursor = read_optional(text, cursor)
            if name is None or title is None:
                continue
            name = name.strip()
            if match.group(1):
                counter = None
            else:
                counter = shared.strip() if shared else name
            self.state.theorems[name] = (title.strip(), counter, within.strip() if within else None)
            if counter and within:
                self.state.theorem_scopes[counter] = within.strip()
            parts.append(text[pos : match.start()])
            pos = cursor
        parts.append(text[pos:])
        return "".join(parts)

    def _glossary_entry(self, args: List[str], opt: str | None) -> str:
        fields = parse_keyval(args[1])
        key = args[0].strip()
        self.state.glossary[key] = {
            "name": str(fields.get("name", key)),
            "description": str(fields.get("description", "")),
            "plural": str(fields.get("plural", f"{fields.get('name', key)}s")),
            "acronym": False,
        }
        return ""

    def _acronym(self, args: List[str], opt: str | None) -> str:
        key = args[0].strip()
        self.state.glossary[key] = {
            "name": args[1].strip(),
            "description": args[2].strip(),
            "plural": f"{args[1].strip()}s",
            "acronym": True,
        }
        return ""

    # title and front matter

    def process_title(self, body: str) -> str:
        return re.sub(r"\\maketitle(?![A-Za-z])", lambda _m: f"\n\n{self.render_title()}\n\n", body, count=1)

    def _authors(self) -> List[str]:
        author = self.document.author if self.document else DEFAULT_AUTHOR
        return [part.strip() for part in split_top_level(author, re.compile(r"\\and(?![A-Za-z])")) if part.strip()]

    def render_title(self, css: str = "article-title", tag: str = "header") -> str:
        document = self.document
        authors = "".join(f'<div class="author">{author}</div>' for author in self._authors())
        date = f'<div class="date">{document.date}</div>' if document.date else ""
        return (
            f'<{tag} class="{css}"><h1 class="title">{document.title}</h1>'
            f'<div class="authors">{authors}</div>{date}</{tag}>'
        )

    # headings

    def render_heading(
        self, command: str, starred: bool, title: str | None, short: str | None, label: str | None
    ) -> str:
        if title is None:
            return self.render_matter(command)
        level = SECTION_LEVELS[command]
        number = None if starred else self.heading_number(command)
        anchor = self.state.anchors.allocate(f"{command}-{structure.slugify(title)}")
        if label:
            self.state.labels.register(label, number or title, command, anchor)
        self.state.blocks.append(Heading(level=level, title=title, id=anchor, number=number, command=command))
        if level <= self.TOC_LEVEL:
            self.state.toc.append(
                TocEntry(level=level, number=number, title=short or title, anchor=anchor, command=command)
            )
        logging.debug("Heading %s %s %r", command, number or "-", title)
        return f"\n\n{self.heading_html(command, number, title, anchor)}\n\n"

    def render_matter(self, command: str) -> str:
        if command == "appendix":
            self.state.appendix = True
            self.state.counters.reset(self.HIERARCHY[0])
        else:
            self.state.matter = command[: -len("matter")]
        logging.debug("%s: \\%s", self.name, command)
        return ""

    def numbering_active(self, command: str) -> bool:
        return True

    def heading_number(self, command: str) -> str | None:
        if command == "part":
            return to_roman(self.state.counters.step("part"))
        if command not in self.HIERARCHY:
            logging.warning("\\%s is not available in %s; heading left unnumbered", command, self.name)
            return None
        if self.HIERARCHY.index(command) >= self.NUMBER_DEPTH or not self.numbering_active(command):
            return None
        self.state.counters.step(command)
        return self.format_number(command)

    def format_number(self, command: str) -> str:
        index = self.HIERARCHY.index(command)
        values = [self.state.counters.value(name) for name in self.HIERARCHY[: index + 1]]
        first = to_letter(values[0]) if self.state.appendix else str(values[0])
        return ".".join([first] + [str(v) for v in values[1:]])

    def display_number(self, command: str, number: str) -> str:
        return number

    def heading_html(self, command: str, number: str | None, title: str, anchor: str) -> str:
        tag = max(SECTION_LEVELS[command], 1)
        if command == "part":
            return chapter_heading_html(command, 1, number, title, anchor, False)
        number_attr = f' data-number="{number}"' if number else ""
        number_html = (
            f'<span class="{command}-number">{self.display_number(command, number)}</span> ' if number else ""
        )
        return f'<h{tag} class="latex-{command}" id="{anchor}"{number_attr}>{number_html}{title}</h{tag}>'

    # theorem-like environments

    def process_theorems(self, body: str) -> str:
        names = list(self.state.theorems) + [f"{name}*" for name in self.state.theorems] + ["proof"]
        headings = [(m.start(), m.group(1), m.group(2)) for m in _HEADING_TAG.finditer(body)]
        positions = [start for start, _, _ in headings]

        def _render(env: EnvironmentMatch) -> str:
            content = self.process_theorems(env.content)
            if env.name == "proof":
                return self.render_proof(content, env.options)
            base = env.name.rstrip("*")
            title, counter, within = self.state.theorems[base]
            number = None
            if counter and not env.name.endswith("*"):
                scope = self.state.theorem_scopes.get(counter)
                prefix = None
                if scope:
                    prefix = ""
                    index = bisect.bisect_right(positions, env.start) - 1
                    while index >= 0:
                        if headings[index][1] == scope:
                            prefix = headings[index][2]
                            break
                        index -= 1
                    if self.state.theorem_prefixes.get(counter) != prefix:
                        self.state.counters.reset(f"theorem:{counter}")
                        self.state.theorem_prefixes[counter] = prefix
                value = self.state.counters.step(f"theorem:{counter}")
                number = f"{prefix}.{value}" if prefix else str(value)
            return self.render_theorem(base, title, number, content, env.options)

        return replace_environments(body, names, _render)

    def render_theorem(self, kind: str, title: str, number: str | None, content: str, note: str | None) -> str:
        label = _LEADING_LABEL.match(content)
        anchor = f"{kind}-{number}" if number else self.state.anchors.allocate(f"{kind}-unnumbered")
        if label:
            content = content[label.end() :]
            self.state.labels.register(label.group(1), number or title, kind, anchor)
        self.state.blocks.append(EnvironmentBlock(name=kind, content=content, options=note))
        header = f'<span class="theorem-name">{title}{" " + number if number else ""}</span>'
        if note:
            header += f' <span class="theorem-note">({note.strip()})</span>'
        return (
            f'<div class="theorem theorem-{kind}" id="{anchor}">'
            f'<div class="theorem-header">{header}.</div>'
            f'<div class="theorem-body">\n\n{content.strip()}\n\n</div></div>'
        )

    def render_proof(self, content: str, note: str | None) -> str:
        title = note.strip() if note else "Proof"
        return (
            f'<div class="proof"><div class="proof-header"><em>{title}.</em></div>'
            f'<div class="proof-body">\n\n{content.strip()} <span class="qed">□</span>\n\n</div></div>'
        )

    # math

    def process_math(self, body: str) -> str:
        return self.math.process(body, self._protect_math)

    def _protect_math(self, html: str, block: bool) -> str:
        return self.state.store.protect("math", "math", "", html=html, block=block)

    # bibliography, index, glossary

    def process_bibliography(self, body: str) -> str:
        body = replace_environments(body, "thebibliography", self._render_bibliography)
        for command in ("bibliography", "printbibliography"):
            body = replace_commands(body, command, self._external_bibliography, nargs=1 if command == "bibliography" else 0)
        return body

    def _render_bibliography(self, env: EnvironmentMatch) -> str:
        _, pos = read_group(env.content, 0)
        chunks = split_top_level(env.content[pos:], _BIBITEM)
        items = []
        for chunk in chunks[1:]:
            label, cursor = read_optional(chunk, 0)
            key, cursor = read_group(chunk, cursor)
            if key is None:
                logging.warning("\\bibitem without a key skipped")
                continue
            key = key.strip()
            display = label.strip() if label else str(len(self.state.citations) + 1)
            if key in self.state.citations:
                logging.warning("Duplicate bibliography key '%s'", key)
                continue
            self.state.citations[key] = display
            items.append(
                f'<li class="bibliography-item" id="bib-{escapeHtml(key)}">'
                f'<span class="bibliography-label">[{display}]</span> {chunk[cursor:].strip()}</li>'
            )
        self.state.blocks.append(EnvironmentBlock(name="thebibliography", content=env.content))
        return (
            f'<section class="bibliography"><h2 class="bibliography-title">{self.bibliography_title}</h2>'
            f'<ol class="bibliography-list">{"".join(items)}</ol></section>'
        )

    def _external_bibliography(self, args: List[str], opt: str | None) -> str:
        source = args[0].strip() if args else ""
        logging.warning("External bibliography %r is not loaded", source or "(printbibliography)")
        return (
            f'<section class="bibliography bibliography-external" data-source="{escapeHtml(source)}">'
            f'<h2 class="bibliography-title">{self.bibliography_title}</h2></section>'
        )

    def process_index(self, body: str) -> str:
        def _anchor(args: List[str], opt: str | None) -> str:
            anchor = f"index-{len(self.state.index_terms) + 1}"
            self.state.index_terms.append((args[0], anchor))
            return f'<span class="index-anchor" id="{anchor}"></span>'

        body = replace_commands(body, "index", _anchor, optional=False)
        return re.sub(r"\\printindex(?![A-Za-z])", lambda _m: self.render_index(), body)

    def render_index(self) -> str:
        grouped: Dict[str, List[str]] = {}
        for term, anchor in self.state.index_terms:
            entry = ", ".join(part.split("@")[-1].strip() for part in term.split("!"))
            grouped.setdefault(entry, []).append(anchor)
        items = "".join(
            f'<li class="index-entry">{term}: '
            + ", ".join(f'<a href="#{anchor}">{i}</a>' for i, anchor in enumerate(anchors, start=1))
            + "</li>"
            for term, anchors in sorted(grouped.items(), key=lambda item: item[0].lower())
        )
        return f'<section class="index"><h2 class="index-title">Index</h2><ul class="index-list">{items}</ul></section>'

    def process_glossary(self, body: str) -> str:
        return re.sub(r"\\printglossar(?:y|ies)(?:\[[^\]]*\])?", lambda _m: self.render_glossary(), body)

    def render_glossary(self) -> str:
        entries = sorted(self.state.glossary.items(), key=lambda item: item[1]["name"].lower())
        items = "".join(
            f'<dt class="glossary-term" id="gls-{escapeHtml(key)}">{entry["name"]}</dt>'
            f'<dd class="glossary-description">{entry["description"]}</dd>'
            for key, entry in entries
        )
        return f'<section class="glossary"><h2 class="glossary-title">Glossary</h2><dl class="glossary-list">{items}</dl></section>'

    # contents and references

    def process_contents(self, body: str) -> str:
        body = re.sub(r"\\tableofcontents(?![A-Za-z])", lambda _m: self.render_contents(), body)
        body = re.sub(r"\\listoffigures(?![A-Za-z])", lambda _m: self.process_math(self.floats.list_of("figure")), body)
        return re.sub(r"\\listoftables(?![A-Za-z])", lambda _m: self.process_math(self.floats.list_of("table")), body)

    def render_contents(self) -> str:
        entries = []
        for entry in self.state.toc:
            number = (
                f'<span class="toc-number">{self.display_number(entry.command, entry.number)}</span> '
                if entry.number
                else ""
            )
            entries.append(
                f'<li class="toc-entry toc-level-{entry.level} toc-{entry.command}">'
                f'<a href="#{entry.anchor}">{number}{entry.title}</a></li>'
            )
        html = (
            f'<nav class="table-of-contents"><h2 class="toc-title">{self.contents_title}</h2>'
            f'<ul class="toc-list">{"".join(entries)}</ul></nav>'
        )
        return self.process_math(html)

    def resolve_references(self, body: str) -> str:
        self.state.store.transform(lambda html: resolve_references(html, self.state.labels), "math")
        return resolve_references(body, self.state.labels)

    # environments

    def process_environments(self, body: str) -> str:
        body = structure.render_lists(body, self.state.blocks)
        return structure.replace_remaining_environments(body, self._environment)

    def _environment(self, name: str, content: str, options: str | None) -> str:
        content = structure.replace_remaining_environments(content, self._environment)
        self.state.blocks.append(EnvironmentBlock(name=name, content=content, options=options))
        return self.render_environment(name, content, options)

    def render_environment(self, name: str, content: str, options: str | None = None) -> str:
        body = content.strip()
        if name in {"quote", "quotation"}:
            return f'<blockquote class="latex-{name}">\n\n{body}\n\n</blockquote>'
        if name == "verse":
            lines = "<br>".join(line.strip() for line in split_top_level(body, "\\\\"))
            return f'<blockquote class="latex-verse">{lines}</blockquote>'
        if name in {"center", "flushleft", "flushright"}:
            return f'<div class="{name}">\n\n{body}\n\n</div>'
        if name == "minipage":
            width, pos = read_group(content, 0)
            inner = content[pos:].strip() if width is not None else body
            style = f' style="width: {css_length(width)}"' if width else ""
            return f'<div class="minipage"{style}>\n\n{inner}\n\n</div>'
        if name == "multicols":
            count, pos = read_group(content, 0)
            inner = content[pos:].strip() if count is not None else body
            columns = count.strip() if count and count.strip().isdigit() else "2"
            return f'<div class="multicols" style="column-count: {columns}">\n\n{inner}\n\n</div>'
        if name == "abstract":
            return (
                '<div class="abstract"><h2 class="abstract-title">Abstract</h2>'
                f'<div class="abstract-content">\n\n{body}\n\n</div></div>'
            )
        if name == "keywords":
            return f'<div class="keywords"><strong>Keywords:</strong> {body}</div>'
        logging.debug("Generic environment '%s'", name)
        css = re.sub(r"[^A-Za-z0-9-]", "-", name)
        return f'<div class="environment environment-{css}">\n\n{body}\n\n</div>'

    # inline commands

    def inline(self, text: str) -> str:
        return structure.resolve_inline(text, self.commands, self.render_command, RAW_COMMANDS)

    def render_command(self, name: str, args: List[str], optional: str | None = None) -> str:
        if name not in self.commands:
            return self.unknown_command(name, args)
        if name in _WRAPPERS:
            start, end = _WRAPPERS[name]
            return f"{start}{args[0] if args else ''}{end}"
        if name in _SYMBOLS:
            return _SYMBOLS[name]
        if name in _PAGE_BREAKS:
            return '<div class="page-break"></div>'
        if name == "today":
            return today(self.config)
        if name in {"textrm", "textup", "textmd", "textnormal", "mbox", "hbox", "text"}:
            return args[0] if args else ""
        if name == "url" and args:
            url = args[0].strip()
            return f'<a class="url" href="{escapeHtml(url)}">{escapeHtml(url)}</a>'
        if name == "href" and len(args) == 2:
            return f'<a class="href" href="{escapeHtml(args[0].strip())}">{self.inline(args[1])}</a>'
        if name == "textcolor" and len(args) == 2:
            return f'<span style="color: {resolve_color(args[0])}">{self.inline(args[1])}</span>'
        if name == "colorbox" and len(args) == 2:
            return f'<span class="colorbox" style="background-color: {resolve_color(args[0])}">{self.inline(args[1])}</span>'
        if name == "fcolorbox" and len(args) == 3:
            return (
                f'<span class="colorbox" style="border: 1px solid {resolve_color(args[0])}; '
                f'background-color: {resolve_color(args[1])}">{self.inline(args[2])}</span>'
            )
        if name in _CITE_COMMANDS and args:
            return self.render_citation(args[0], optional)
        if name in _GLOSSARY_COMMANDS and args:
            return self.render_glossary_term(name, args[0].strip())
        if name == "includegraphics" and args:
            return render_graphics(args[0], optional)
        if name == "caption" and args:
            return f'<div class="caption">{args[0]}</div>'
        if name == "thanks" and args:
            return f'<sup class="thanks" title="{escapeHtml(re.sub(r"<[^>]+>", "", args[0]))}">*</sup>'
        if name in {"input", "include"} and args:
            logging.warning("\\%s{%s} is not expanded", name, args[0])
            return f'<span class="latex-include" data-file="{escapeHtml(args[0].strip())}"></span>'
        if name == "item":
            return '<span class="item-bullet">•</span> '
        if name == "label" and args:
            logging.debug("Label '%s' outside a numbered element", args[0])
            return ""
        # layout and font declarations
        return ""

    def unknown_command(self, name: str, args: List[str]) -> str:
        logging.debug("Unknown command \\%s", name)
        return f'<span class="latex-command" data-command="{escapeHtml(name)}">{"".join(args)}</span>'

    def render_citation(self, keys: str, note: str | None) -> str:
        parts = []
        for key in (k.strip() for k in keys.split(",")):
            if not key:
                continue
            number = self.state.citations.get(key)
            if number is None:
                logging.warning("Unresolved citation '%s'", key)
                parts.append(f'<span class="citation-unresolved">{escapeHtml(key)}</span>')
            else:
                parts.append(f'<a href="#bib-{escapeHtml(key)}">{number}</a>')
        suffix = f", {note}" if note else ""
        return f'<span class="citation">[{", ".join(parts)}{suffix}]</span>'

    def render_glossary_term(self, command: str, key: str) -> str:
        entry = self.state.glossary.get(key)
        if entry is None:
            logging.warning("Unknown glossary entry '%s'", key)
            return f'<span class="glossary-unresolved">[{escapeHtml(key)}]</span>'
        first_use = key not in self.state.glossary_used
        self.state.glossary_used.add(key)
        if entry["acronym"]:
            if command == "acrlong":
                text = entry["description"]
            elif command == "acrfull" or (first_use and command in {"gls", "Gls"}):
                text = f"{entry['description']} ({entry['name']})"
            else:
                text = entry["name"]
        else:
            text = entry["plural"] if command in {"glspl", "Glspl"} else entry["name"]
        if command in {"Gls", "Glspl"} and text:
            text = text[0].upper() + text[1:]
        return f'<a class="glossary-ref" href="#gls-{escapeHtml(key)}">{text}</a>'

    # layout

    def option_classes(self) -> List[str]:
        classes = []
        for option, value in self.options.items():
            if value is not True:
                continue
            if option in COMMON_OPTIONS:
                classes.append(COMMON_OPTIONS[option])
            elif option in self.CLASS_OPTIONS:
                classes.append(self.CLASS_OPTIONS[option])
            elif re.fullmatch(r"\d+pt", option):
                classes.append(f"font-{option}")
            elif option.endswith("paper"):
                classes.append(f"paper-{option[: -len('paper')]}")
            else:
                logging.debug("Ignoring class option %s", option)
        return classes

    def layout(self, body: str) -> str:
        return f'<div class="document-body">{body}</div>'

    def wrap_document(self, body: str) -> str:
        classes = ["latex-document", f"document-{self.name}", f"theme-{self.context.theme}"]
        classes.extend(self.option_classes())
        return f'<div class="{" ".join(classes)}" data-document-class="{self.class_name}">{self.layout(body)}</div>'

    def get_info(self) -> dict:
        return {
            "name": self.class_name,
            "display_name": self.display_name,
            "supported_commands": len(self.commands),
            "metadata": dict(self.metadata),
        }


class ArticleRenderer(BaseRenderer):
    name = "article"
    display_name = "Article"

    def layout(self, body: str) -> str:
        return f'<article class="article-content">{body}</article>'


class ReportRenderer(BaseRenderer):
    name = "report"
    display_name = "Report"
    HIERARCHY = ("chapter", "section", "subsection", "subsubsection", "paragraph", "subparagraph")
    NUMBER_DEPTH = 3
    CLASS_OPTIONS = {"openright": "open-right", "openany": "open-any"}
    bibliography_title = "Bibliography"

    def render_title(self, css: str = "report-title-page title-page", tag: str = "section") -> str:
        return super().render_title(css, tag)

    def heading_html(self, command: str, number: str | None, title: str, anchor: str) -> str:
        if command == "chapter":
            return chapter_heading_html(command, 1, number, title, anchor, self.state.appendix)
        return super().heading_html(command, number, title, anchor)

    def layout(self, body: str) -> str:
        return f'<div class="report-content">{body}</div>'


class BookRenderer(BaseRenderer):
    name = "book"
    display_name = "Book"
    HIERARCHY = ("chapter", "section", "subsection", "subsubsection", "paragraph", "subparagraph")
    NUMBER_DEPTH = 3
    CLASS_OPTIONS = {"openright": "open-right", "openany": "open-any"}
    COMMANDS = {"epigraph": 2}
    bibliography_title = "Bibliography"

    def numbering_active(self, command: str) -> bool:
        return self.state.matter == "main"

    def render_matter(self, command: str) -> str:
        html = super().render_matter(command)
        if command == "appendix":
            self.state.matter = "main"
        return html

    def render_title(self, css: str = "book-title-page title-page", tag: str = "section") -> str:
        return super().render_title(css, tag)

    def heading_html(self, command: str, number: str | None, title: str, anchor: str) -> str:
        if command == "chapter":
            return chapter_heading_html(command, 1, number, title, anchor, self.state.appendix)
        return super().heading_html(command, number, title, anchor)

    def render_environment(self, name: str, content: str, options: str | None = None) -> str:
        if name == "dedication":
            return f'<div class="dedication">\n\n{content.strip()}\n\n</div>'
        if name in {"preface", "foreword", "acknowledgments"}:
            title = {"preface": "Preface", "foreword": "Foreword", "acknowledgments": "Acknowledgments"}[name]
            return (
                f'<section class="{name}"><h1 class="{name}-title">{title}</h1>'
                f'<div class="{name}-content">\n\n{content.strip()}\n\n</div></section>'
            )
        return super().render_environment(name, content, options)

    def render_command(self, name: str, args: List[str], optional: str | None = None) -> str:
        if name == "epigraph" and len(args) == 2:
            return (
                f'<blockquote class="epigraph">{args[0]}'
                f'<footer class="epigraph-source">{args[1]}</footer></blockquote>'
            )
        return super().render_command(name, args, optional)

    def layout(self, body: str) -> str:
        return f'<div class="book-content">{body}</div>'


class IEEETranRenderer(BaseRenderer):
    name = "IEEEtran"
    display_name = "IEEE Transactions"
    HIERARCHY = ("section", "subsection", "subsubsection", "paragraph")
    NUMBER_DEPTH = 3
    CLASS_OPTIONS = {
        "conference": "ieee-conference",
        "journal": "ieee-journal",
        "compsoc": "ieee-compsoc",
        "technote": "ieee-technote",
        "peerreview": "ieee-peerreview",
    }
    COMMANDS = {
        "IEEEPARstart": 2,
        "IEEEauthorblockN": 1,
        "IEEEauthorblockA": 1,
        "IEEEauthorrefmark": 1,
        "IEEEmembership": 1,
        "IEEEoverridecommandlockouts": 0,
        "IEEEpeerreviewmaketitle": 0,
    }

    def format_number(self, command: str) -> str:
        index = self.HIERARCHY.index(command)
        values = [self.state.counters.value(name) for name in self.HIERARCHY[: index + 1]]
        section = to_letter(values[0]) if self.state.appendix else to_roman(values[0])
        if index == 0:
            return section
        number = f"{section}-{to_letter(values[1])}"
        if index == 2:
            number += str(values[2])
        return number

    def display_number(self, command: str, number: str) -> str:
        last = number.split("-")[-1]
        if command == "section":
            return f"{number}."
        if command == "subsection":
            return f"{last}."
        return f"{re.sub(r'^[A-Z]+', '', last)})"

    def render_title(self, css: str = "ieee-title", tag: str = "header") -> str:
        document = self.document
        author = document.author
        names = re.findall(r"\\IEEEauthorblockN\{((?:[^{}]|\{[^{}]*\})*)\}", author)
        affiliations = re.findall(r"\\IEEEauthorblockA\{((?:[^{}]|\{[^{}]*\})*)\}", author)
        if names:
            blocks = "".join(
                f'<div class="ieee-author-block"><div class="ieee-author-name">{name.strip()}</div>'
                f'<div class="ieee-author-affiliation">{affiliations[i].strip() if i < len(affiliations) else ""}</div></div>'
                for i, name in enumerate(names)
            )
        else:
            blocks = "".join(
                f'<div class="ieee-author-block"><div class="ieee-author-name">{name}</div></div>'
                for name in self._authors()
            )
        return f'<{tag} class="{css}"><h1 class="title">{document.title}</h1><div class="ieee-authors">{blocks}</div></{tag}>'

    def render_environment(self, name: str, content: str, options: str | None = None) -> str:
        if name == "abstract":
            return f'<div class="ieee-abstract"><strong><em>Abstract</em></strong>—{content.strip()}</div>'
        if name == "IEEEkeywords":
            return f'<div class="ieee-keywords"><strong><em>Index Terms</em></strong>—{content.strip()}</div>'
        if name == "IEEEbiography":
            person, pos = read_group(content, 0)
            body = content[pos:].strip() if person is not None else content.strip()
            return f'<div class="ieee-biography"><strong>{person or ""}</strong> {body}</div>'
        return super().render_environment(name, content, options)

    def render_command(self, name: str, args: List[str], optional: str | None = None) -> str:
        if name == "IEEEPARstart" and len(args) == 2:
            return f'<span class="ieee-dropcap">{args[0]}</span><span class="ieee-parstart">{args[1].upper()}</span>'
        if name == "IEEEauthorblockN" and args:
            return f'<span class="ieee-author-name">{args[0]}</span>'
        if name == "IEEEauthorblockA" and args:
            return f'<span class="ieee-author-affiliation">{args[0]}</span>'
        if name in {"IEEEauthorrefmark", "IEEEmembership"} and args:
            return f'<sup class="ieee-{name[4:].lower()}">{args[0]}</sup>'
        return super().render_command(name, args, optional)

    def option_classes(self) -> List[str]:
        classes = super().option_classes()
        if "onecolumn" not in self.options and "two-column" not in classes:
            classes.append("two-column")
        return classes

    def layout(self, body: str) -> str:
        return f'<div class="ieee-content">{body}</div>'
