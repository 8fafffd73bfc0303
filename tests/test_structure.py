import pytest

from TexPreview.errors import MissingDocumentEnvironmentError
from TexPreview.model import ListBlock, Paragraph
from TexPreview.structure import (
    AnchorAllocator,
    ProtectedStore,
    collect_footnotes,
    extract_body,
    render_footnotes,
    render_lists,
    replace_headings,
    replace_remaining_environments,
    resolve_inline,
    sanitize,
    slugify,
    typography,
    wrap_paragraphs,
)


def _render(name, args, optional):
    return f"[{name}:{','.join(args)}]"


def test_sanitize_comments_whitespace_and_brackets():
    store = ProtectedStore()
    text = sanitize("a % comment\r\nb \\% kept\n\n\n\nc <x>", store)
    assert text == "a\nb \\% kept\n\nc &lt;x&gt;"


def test_verbatim_is_protected_from_processing():
    store = ProtectedStore()
    text = sanitize("x\\begin{verbatim}<%>\\end{verbatim}y", store)
    assert "%" not in text
    assert store.restore(text) == 'x<pre class="verbatim">&lt;%&gt;</pre>y'


def test_inline_verb_renders_as_code():
    store = ProtectedStore()
    text = sanitize(r"use \verb|a<b| here", store)
    assert store.restore(text) == 'use <code class="inline-code">a&lt;b</code> here'
    assert not store.is_block(0)


def test_store_render_and_transform_by_kind():
    store = ProtectedStore()
    first = store.protect("math", "math", "", html="<b>ref</b>")
    second = store.protect("diagram", "tikzpicture", "body")
    store.render("diagram", lambda item: f"<svg>{item.content}</svg>")
    store.transform(lambda html: html.replace("ref", "1"), "math")
    assert store.restore(first + second) == "<b>1</b><svg>body</svg>"


def test_comment_environment_disappears():
    store = ProtectedStore()
    text = sanitize("a\\begin{comment}hidden\\end{comment}b", store)
    assert store.restore(text) == "ab"


def test_extract_body_requires_both_markers():
    assert extract_body("pre\\begin{document}body\\end{document}") == ("pre", "body")
    with pytest.raises(MissingDocumentEnvironmentError, match=r"Missing \\begin\{document\} command"):
        extract_body("body")
    with pytest.raises(MissingDocumentEnvironmentError, match=r"Missing \\end\{document\} command"):
        extract_body("\\begin{document}body")


def test_slugs_and_anchor_suffixes():
    assert slugify("Hello, World!") == "hello-world"
    assert slugify("$$") == "untitled"
    anchors = AnchorAllocator()
    assert [anchors.allocate("section-a") for _ in range(3)] == ["section-a", "section-a-2", "section-a-3"]


def test_replace_headings_reads_titles_and_labels():
    calls = []

    def render(command, starred, title, short, label):
        calls.append((command, starred, title, short, label))
        return "<h>"

    text = replace_headings(
        r"\section[Short]{Intro {x}}\label{sec:i} text \subsection*{More}\appendix", render
    )
    assert text == "<h> text <h><h>"
    assert calls == [
        ("section", False, "Intro {x}", "Short", "sec:i"),
        ("subsection", True, "More", None, None),
        ("appendix", False, None, None, None),
    ]


def test_lists_with_custom_labels_and_nesting():
    blocks = []
    html = render_lists(
        r"\begin{itemize}\item a \begin{enumerate}\item x\end{enumerate}\item[*] b\end{itemize}", blocks
    )
    assert html == (
        '<ul class="latex-itemize"><li class="list-item">a <ol class="latex-enumerate">'
        '<li class="list-item">x</li></ol></li>'
        '<li class="list-item custom-label"><span class="item-label">*</span> b</li></ul>'
    )
    assert [b.kind for b in blocks if isinstance(b, ListBlock)] == ["unordered", "ordered"]


def test_description_list():
    html = render_lists(r"\begin{description}\item[Term] Def\end{description}")
    assert html == (
        '<dl class="latex-description"><dt class="description-term">Term</dt>'
        '<dd class="description-desc">Def</dd></dl>'
    )


def test_remaining_environments_outermost_first():
    seen = []

    def render(name, content, options):
        seen.append(name)
        return f"<{name}>{content}</{name}>"

    html = replace_remaining_environments(r"\begin{a}1\begin{b}2\end{b}\end{a}", render)
    assert seen == ["a"]
    assert html == r"<a>1\begin{b}2\end{b}</a>"


def test_inline_commands_resolve_inside_out():
    arity = {"textbf": 1, "emph": 1, "url": 1}
    text = resolve_inline(r"\textbf{\emph{x}} \unknown{y} 50\% a\\b \url{a_b}", arity, _render, raw={"url"})
    assert text == "[textbf:[emph:x]] [unknown:y] 50% a<br>b [url:a_b]"


def test_typography_outside_tags():
    assert typography("a---b -- ``q''") == "a—b – “q”"
    assert typography("A~B") == "A&nbsp;B"
    assert typography('<a title="x--y">--</a>') == '<a title="x--y">–</a>'


def test_paragraph_wrapping():
    blocks = []
    html = wrap_paragraphs("one\ntwo\n\n<div>x</div>\n\n  \n\nthree", blocks=blocks)
    assert html == "<p>one\ntwo</p>\n<div>x</div>\n<p>three</p>"
    assert [b.text for b in blocks if isinstance(b, Paragraph)] == ["one\ntwo", "three"]


def test_inline_placeholders_stay_in_paragraphs():
    store = ProtectedStore()
    inline = store.protect("math", "math", "", html="<span>m</span>", block=False)
    block = store.protect("math", "math", "", html="<div>M</div>")
    html = wrap_paragraphs(f"see {inline}\n\n{block}", store)
    assert html == f"<p>see {inline}</p>\n{block}"


def test_footnotes_are_numbered_and_collected():
    notes = []
    text = collect_footnotes(r"a\footnote{first} b\footnote{second {x}}", notes)
    assert notes == ["first", "second {x}"]
    assert '<a href="#fn-2" id="fnref-2">2</a>' in text
    section = render_footnotes(notes)
    assert section.startswith('<section class="footnotes">')
    assert '<li id="fn-1" class="footnote-item">first' in section
    assert render_footnotes([]) == ""
