from __future__ import annotations

import logging
import textwrap

from markdown_it import MarkdownIt
from mdit_py_plugins.texmath import texmath_plugin

from .code_highlighter import CodeConverter
from .math_converter import MathConverter


class MarkdownConverter:
    """Render `markdown` environment bodies; math and fences use the LaTeX converters."""

    def __init__(self, math: MathConverter | None = None, code: CodeConverter | None = None) -> None:
        self.math = math or MathConverter()
        self.code = code or CodeConverter()
        self.md = MarkdownIt("commonmark").use(texmath_plugin).enable(["table"])
        rules = self.md.renderer.rules
        rules["math_inline"] = self._math_inline
        rules["math_inline_double"] = self._math_block
        rules["math_block"] = self._math_block
        rules["math_block_eqno"] = self._math_block
        rules["fence"] = self._fence

    def render(self, text: str) -> str:
        logging.debug("Rendering markdown block (%d chars)", len(text))
        body = self.md.render(textwrap.dedent(text.strip("\n")))
        return f'<div class="markdown-block">{body}</div>'

    def _math_inline(self, tokens, idx, options, env) -> str:
        return self.math.render_inline(tokens[idx].content)

    def _math_block(self, tokens, idx, options, env) -> str:
        token = tokens[idx]
        if token.type == "math_block_eqno" and token.info:
            return self.math.render_environment("equation", f"{token.content}\\tag{{{token.info}}}")
        return self.math.render_display(token.content)

    def _fence(self, tokens, idx, options, env) -> str:
        token = tokens[idx]
        language = token.info.split()[0] if token.info.strip() else None
        return self.code.render_block(token.content.rstrip("\n"), language)

