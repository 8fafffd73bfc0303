from pathlib import Path

import pytest

from TexPreview.cli import build_parser, main
from TexPreview.utils import render_page, resolve_output_path

SOURCE = r"""\documentclass{article}
\title{\textbf{Notes}}
\begin{document}
\section{Intro}
Hello $x^2$.
\end{document}
"""


def test_convert_writes_html_next_to_input(tmp_path: Path):
    tex = tmp_path / "notes.tex"
    tex.write_text(SOURCE, encoding="utf-8")
    assert main([str(tex)]) == 0
    html = (tmp_path / "notes.html").read_text(encoding="utf-8")
    assert html.startswith("<!DOCTYPE html>")
    assert "<title>Notes</title>" in html
    assert '<span class="section-number">1</span> Intro</h2>' in html


def test_output_option_and_theme(tmp_path: Path):
    tex = tmp_path / "notes.tex"
    tex.write_text(SOURCE, encoding="utf-8")
    out = tmp_path / "out"
    out.mkdir()
    assert main([str(tex), "-o", str(out), "--theme", "dark"]) == 0
    assert "theme-dark" in (out / "notes.html").read_text(encoding="utf-8")


def test_config_file_is_applied(tmp_path: Path):
    tex = tmp_path / "notes.tex"
    tex.write_text(SOURCE, encoding="utf-8")
    settings = tmp_path / "settings.yaml"
    settings.write_text("theme: paper\n", encoding="utf-8")
    target = tmp_path / "page.html"
    assert main([str(tex), "--config", str(settings), "-o", str(target)]) == 0
    assert "theme-paper" in target.read_text(encoding="utf-8")


def test_check_reports_mismatches(tmp_path: Path, capsys):
    tex = tmp_path / "broken.tex"
    tex.write_text(SOURCE.replace("Hello", "\\begin{itemize}Hello"), encoding="utf-8")
    assert main([str(tex), "--check"]) == 1
    assert "Mismatched \\begin{itemize} and \\end{itemize} commands" in capsys.readouterr().out
    assert not (tmp_path / "broken.html").exists()


def test_check_passes_on_valid_document(tmp_path: Path):
    tex = tmp_path / "notes.tex"
    tex.write_text(SOURCE, encoding="utf-8")
    assert main([str(tex), "--check"]) == 0


def test_list_classes(capsys):
    assert main(["--list-classes"]) == 0
    assert capsys.readouterr().out.split() == ["article", "report", "book", "memoir", "IEEEtran"]


def test_missing_input_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        main([str(tmp_path / "absent.tex")])


def test_input_is_required():
    with pytest.raises(SystemExit):
        main([])


def test_parser_defaults():
    args = build_parser().parse_args(["a.tex"])
    assert args.output is None
    assert not args.check
    assert not args.verbose


def test_output_path_resolution(tmp_path: Path):
    source = tmp_path / "doc.tex"
    assert resolve_output_path(source, None) == tmp_path / "doc.html"
    assert resolve_output_path(source, str(tmp_path)) == tmp_path / "doc.html"
    assert resolve_output_path(source, "x/y.html") == Path("x/y.html")


def test_render_page_escapes_title():
    page = render_page("<div></div>", "A & B")
    assert "<title>A &amp; B</title>" in page
    assert "<body>\n<div></div>\n</body>" in page
