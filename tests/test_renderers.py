import pytest

from TexPreview.config import RenderConfig
from TexPreview.converter import convert
from TexPreview.document_classes import create_renderer, detect_class, list_supported_classes, parse_options
from TexPreview.errors import MissingDocumentClassError, UnsupportedClassError
from TexPreview.renderers import (
    ArticleRenderer,
    BookRenderer,
    IEEETranRenderer,
    ReportRenderer,
    to_letter,
    to_roman,
)


def _doc(body: str, preamble: str = "", cls: str = "article") -> str:
    return f"\\documentclass{{{cls}}}\n{preamble}\n\\begin{{document}}\n{body}\n\\end{{document}}\n"


def test_report_chapters_and_appendix():
    markup = convert(
        _doc(
            r"""
\chapter{Intro}
\section{Scope}\label{sec:scope}
See \ref{sec:scope}.
\appendix
\chapter{Extra}
\section{More}
""",
            cls="report",
        )
    ).markup
    assert '<span class="chapter-label">Chapter 1</span><span class="chapter-name">Intro</span>' in markup
    assert '<span class="section-number">1.1</span> Scope</h2>' in markup
    assert '<a class="cross-ref" href="#section-scope">1.1</a>' in markup
    assert '<span class="chapter-label">Appendix A</span>' in markup
    assert '<span class="section-number">A.1</span> More' in markup
    assert '<div class="report-content">' in markup


def test_book_matter_and_parts():
    markup = convert(
        _doc(
            r"""
\frontmatter
\chapter{Preface}
\mainmatter
\part{Basics}
\chapter{One}
\backmatter
\chapter{Notes}
""",
            cls="book",
        )
    ).markup
    assert 'id="chapter-preface"><span class="chapter-name">Preface</span>' in markup
    assert '<span class="part-label">Part I</span>' in markup
    assert '<span class="chapter-label">Chapter 1</span><span class="chapter-name">One</span>' in markup
    assert 'id="chapter-notes"><span class="chapter-name">Notes</span>' in markup
    assert "Chapter 2" not in markup


def test_book_specific_environments():
    markup = convert(
        _doc(r"\begin{dedication}For you\end{dedication}\epigraph{Words}{Someone}", cls="book")
    ).markup
    assert '<div class="dedication">' in markup
    assert '<blockquote class="epigraph">Words<footer class="epigraph-source">Someone</footer></blockquote>' in markup


def test_memoir_uses_book_rules():
    result = convert(_doc(r"\chapter{One}", cls="memoir"))
    assert '<div class="book-content">' in result.markup
    assert 'document-book theme-default" data-document-class="memoir"' in result.markup
    assert result.document_class == "memoir"
    assert result.metadata["documentClass"] == "memoir"


def test_ieee_numbering_and_front_matter():
    source = r"""\documentclass[conference]{IEEEtran}
\title{Paper}
\author{\IEEEauthorblockN{Ada}\IEEEauthorblockA{Lab}}
\begin{document}
\maketitle
\begin{abstract}Short.\end{abstract}
\section{Introduction}\label{sec:intro}
\IEEEPARstart{T}{his} works.
\subsection{Setup}\label{sec:setup}
\subsubsection{Detail}
See \ref{sec:setup}.
\end{document}
"""
    markup = convert(source).markup
    assert 'ieee-conference two-column" data-document-class="IEEEtran"' in markup
    assert '<div class="ieee-author-name">Ada</div><div class="ieee-author-affiliation">Lab</div>' in markup
    assert '<div class="ieee-abstract"><strong><em>Abstract</em></strong>—Short.</div>' in markup
    assert '<span class="section-number">I.</span> Introduction' in markup
    assert '<span class="subsection-number">A.</span> Setup' in markup
    assert '<span class="subsubsection-number">1)</span> Detail' in markup
    assert '<a class="cross-ref" href="#subsection-setup">I-A</a>' in markup
    assert '<span class="ieee-dropcap">T</span><span class="ieee-parstart">HIS</span>' in markup


def test_ieee_onecolumn_option_is_respected():
    markup = convert(_doc("x", cls="IEEEtran").replace("{IEEEtran}", "[onecolumn]{IEEEtran}")).markup
    assert "two-column" not in markup
    assert "one-column" in markup


def test_article_appendix_uses_letters():
    markup = convert(_doc(r"\section{Main}\appendix\section{Data}")).markup
    assert '<span class="section-number">1</span> Main' in markup
    assert '<span class="section-number">A</span> Data' in markup


def test_theorems_numbered_within_sections():
    preamble = "\\newtheorem{theorem}{Theorem}[section]\n\\newtheorem{lemma}[theorem]{Lemma}"
    body = r"""
\section{A}
\begin{theorem}\label{thm:a}First.\end{theorem}
\begin{lemma}Second.\end{lemma}
\begin{proof}Done.\end{proof}
\section{B}
\begin{theorem}Third.\end{theorem}
See \ref{thm:a}.
"""
    markup = convert(_doc(body, preamble)).markup
    assert '<div class="theorem theorem-theorem" id="theorem-1.1">' in markup
    assert '<span class="theorem-name">Theorem 1.1</span>' in markup
    assert '<span class="theorem-name">Lemma 1.2</span>' in markup
    assert '<span class="theorem-name">Theorem 2.1</span>' in markup
    assert '<a class="cross-ref" href="#theorem-1.1">1.1</a>' in markup
    assert '<div class="proof-header"><em>Proof.</em></div>' in markup
    assert '<span class="qed">□</span>' in markup


def test_shared_theorem_counter_and_notes():
    preamble = r"\newtheorem{lemma}[theorem]{Lemma}"
    body = r"\begin{theorem}[Main]A\end{theorem}\begin{lemma}B\end{lemma}\begin{theorem*}C\end{theorem*}"
    markup = convert(_doc(body, preamble)).markup
    assert '<span class="theorem-name">Theorem 1</span> <span class="theorem-note">(Main)</span>' in markup
    assert '<span class="theorem-name">Lemma 2</span>' in markup
    assert '<span class="theorem-name">Theorem</span>.' in markup


def test_maketitle_with_several_authors():
    preamble = r"\title{My Paper}\author{Ada \and Bob}\date{2024}"
    markup = convert(_doc(r"\maketitle", preamble)).markup
    assert markup.count('<header class="article-title">') == 1
    assert '<h1 class="title">My Paper</h1>' in markup
    assert '<div class="author">Ada</div><div class="author">Bob</div>' in markup
    assert '<div class="date">2024</div>' in markup


def test_report_title_page():
    markup = convert(_doc(r"\maketitle", r"\title{Plan}", cls="report")).markup
    assert '<section class="report-title-page title-page"><h1 class="title">Plan</h1>' in markup
    assert '<div class="author">Unknown Author</div>' in markup


def test_unknown_commands_and_environments_are_kept_visible():
    markup = convert(_doc(r"Some \foo{bar} and \begin{widget}x\end{widget}")).markup
    assert '<span class="latex-command" data-command="foo">bar</span>' in markup
    assert '<div class="environment environment-widget">' in markup


def test_bibliography_and_citations():
    body = r"""
See \cite{knuth} and \cite{nobody}.
\begin{thebibliography}{9}
\bibitem{knuth} D. Knuth, The Art.
\end{thebibliography}
"""
    markup = convert(_doc(body)).markup
    assert '<span class="citation">[<a href="#bib-knuth">1</a>]</span>' in markup
    assert '<span class="citation">[<span class="citation-unresolved">nobody</span>]</span>' in markup
    assert '<li class="bibliography-item" id="bib-knuth"><span class="bibliography-label">[1]</span>' in markup
    assert '<h2 class="bibliography-title">References</h2>' in markup


def test_external_bibliography_logs_warning(caplog):
    markup = convert(_doc(r"\bibliography{refs}")).markup
    assert 'data-source="refs"' in markup
    assert "External bibliography" in caplog.text


def test_table_of_contents():
    markup = convert(_doc("\\tableofcontents\n\\section{Alpha}\n\\subsection{Beta}\n\\section*{Gamma}")).markup
    assert '<nav class="table-of-contents"><h2 class="toc-title">Contents</h2>' in markup
    assert (
        '<li class="toc-entry toc-level-2 toc-section"><a href="#section-alpha">'
        '<span class="toc-number">1</span> Alpha</a></li>'
    ) in markup
    assert '<span class="toc-number">1.1</span> Beta' in markup
    assert '<a href="#section-gamma">Gamma</a>' in markup


def test_footnotes_are_appended():
    markup = convert(_doc(r"Text\footnote{Note.} more.")).markup
    assert '<sup class="footnote-ref"><a href="#fn-1" id="fnref-1">1</a></sup>' in markup
    assert '<li id="fn-1" class="footnote-item">Note.' in markup


def test_acronyms_and_glossary():
    preamble = r"\newacronym{html}{HTML}{HyperText Markup Language}"
    markup = convert(_doc(r"\gls{html} then \gls{html}. \printglossary", preamble)).markup
    assert (
        '<a class="glossary-ref" href="#gls-html">HyperText Markup Language (HTML)</a> then '
        '<a class="glossary-ref" href="#gls-html">HTML</a>'
    ) in markup
    assert '<dt class="glossary-term" id="gls-html">HTML</dt>' in markup


def test_inline_formatting():
    markup = convert(_doc(r"\textbf{\emph{x}} \texttt{y} \url{http://a.b}")).markup
    assert "<strong><em>x</em></strong>" in markup
    assert '<code class="inline-code">y</code>' in markup
    assert '<a class="url" href="http://a.b">http://a.b</a>' in markup


def test_protected_environments_in_a_document():
    body = (
        "\\begin{lstlisting}[language=Python]\nimport os\n\\end{lstlisting}\n\n"
        "\\begin{tikzpicture}\\draw (0,0) -- (1,0);\\end{tikzpicture}\n\n"
        "\\begin{markdown}\n# Hi\n\\end{markdown}\n"
    )
    markup = convert(_doc(body)).markup
    assert "language-python" in markup
    assert '<span class="syntax-keyword">import</span>' in markup
    assert '<div class="tikz-diagram"><svg' in markup
    assert "<h1>Hi</h1>" in markup


def test_today_uses_configured_date():
    result = convert(_doc(r"Written \today."), config=RenderConfig(date="March 3, 2024"))
    assert "Written March 3, 2024." in result.markup
    assert result.metadata["date"] == "March 3, 2024"


def test_include_is_not_expanded(caplog):
    markup = convert(_doc(r"\input{chapter1}")).markup
    assert '<span class="latex-include" data-file="chapter1"></span>' in markup
    assert "is not expanded" in caplog.text


@pytest.mark.parametrize(
    "name, expected",
    [
        ("article", ArticleRenderer),
        ("Report", ReportRenderer),
        ("book", BookRenderer),
        ("memoir", BookRenderer),
        ("ieeetran", IEEETranRenderer),
    ],
)
def test_create_renderer_is_case_insensitive(name, expected):
    assert type(create_renderer(name)) is expected


def test_create_renderer_rejects_unknown_class():
    with pytest.raises(UnsupportedClassError) as excinfo:
        create_renderer("beamer")
    assert excinfo.value.supported == list_supported_classes()


def test_class_detection_and_options():
    source = "% \\documentclass{book}\n\\documentclass[a4paper, draft, fontsize=11pt]{report}"
    assert detect_class(source) == "report"
    assert parse_options(source) == {"a4paper": True, "draft": True, "fontsize": "11pt"}
    assert parse_options(r"\documentclass{article}") == {}
    with pytest.raises(MissingDocumentClassError):
        detect_class("no class here")


def test_renderer_info():
    renderer = create_renderer("article").initialize(_doc("x", r"\title{Hello}"))
    info = renderer.get_info()
    assert info["name"] == "article"
    assert info["metadata"]["title"] == "Hello"
    assert info["supported_commands"] > 50


def test_number_formats():
    assert to_roman(14) == "XIV"
    assert to_letter(3) == "C"
