from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from markdown_it.common.utils import escapeHtml

from .style import BORDER_STYLE, LINE_HEIGHT


def configure_logging(verbose: bool = False) -> None:
    """Configure a simple console logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(message)s",
    )


def resolve_output_path(input_path: Path, output: Optional[str]) -> Path:
    if output:
        out_path = Path(output)
        if out_path.is_dir():
            out_path = out_path / f"{input_path.stem}.html"
        return out_path
    return input_path.with_suffix(".html")


def read_source(path: Path) -> str:
    return path.read_text(encoding="utf-8")


PAGE_STYLE = f"""
body {{ max-width: 52rem; margin: 2rem auto; font-family: serif; line-height: {LINE_HEIGHT}; }}
.two-column .document-body, .two-column .ieee-content {{ column-count: 2; column-gap: 2rem; }}
.math-display {{ text-align: center; margin: 1em 0; }}
.math-row {{ display: flex; justify-content: center; }}
.equation-number {{ margin-left: auto; }}
.latex-table {{ border-collapse: collapse; margin: 0 auto; }}
.latex-table td, .latex-table th {{ padding: 0.2em 0.6em; }}
.float-figure, .float-table, .float-algorithm {{ text-align: center; margin: 1em 0; }}
.theorem-header {{ font-weight: bold; }}
.fbox {{ border: {BORDER_STYLE}; padding: 0 0.2em; }}
.page-break {{ border-top: 1px dashed #999; margin: 2em 0; }}
.ref-unresolved, .citation-unresolved, .caption-missing {{ color: #b00; }}
.small-caps {{ font-variant: small-caps; }}
"""


def render_page(markup: str, title: str = "Document") -> str:
    """Standalone HTML page around converted markup."""
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n<head>\n<meta charset="utf-8">\n'
        f"<title>{escapeHtml(title)}</title>\n"
        f"<style>{PAGE_STYLE}</style>\n"
        f"</head>\n<body>\n{markup}\n</body>\n</html>\n"
    )
