from __future__ import annotations

import logging
import re
from typing import List

from .config import RenderConfig
from .document_classes import create_renderer, detect_class, parse_options
from .errors import EmptyDocumentError, UnbalancedEnvironmentError
from .model import ConversionResult, RenderContext, ValidationReport
from .scanner import count_environments, find_environment
from .structure import PROTECTED_ENVIRONMENTS, strip_comments


def _countable(source: str) -> str:
    """Source with comments and verbatim-like bodies removed."""
    text = strip_comments(source.replace("\r\n", "\n").replace("\r", "\n"))
    pos = 0
    while True:
        env = find_environment(text, list(PROTECTED_ENVIRONMENTS), pos, options=False)
        if env is None:
            return text
        text = text[: env.start] + text[env.end :]
        pos = env.start


def environment_errors(source: str) -> List[str]:
    errors = []
    for name, (begins, ends) in count_environments(_countable(source)).items():
        if name != "document" and begins != ends:
            errors.append(f"Mismatched \\begin{{{name}}} and \\end{{{name}}} commands")
    return errors


def validate(source: str) -> ValidationReport:
    """Cheap structural checks that do not render anything."""
    errors: List[str] = []
    text = strip_comments(source or "")
    if not re.search(r"\\documentclass(?![A-Za-z])", text):
        errors.append("Missing \\documentclass command")
    if not re.search(r"\\begin\{document\}", text):
        errors.append("Missing \\begin{document} command")
    if not re.search(r"\\end\{document\}", text):
        errors.append("Missing \\end{document} command")
    errors.extend(environment_errors(source or ""))
    for error in errors:
        logging.debug("Validation: %s", error)
    return ValidationReport(ok=not errors, errors=errors)


def convert(
    source: str,
    context: RenderContext | None = None,
    config: RenderConfig | None = None,
) -> ConversionResult:
    """Convert a LaTeX document into preview HTML."""
    if not source or not source.strip():
        raise EmptyDocumentError()
    config = config or RenderConfig()
    class_name = detect_class(source)
    if config.strict_environments:
        errors = environment_errors(source)
        if errors:
            raise UnbalancedEnvironmentError(errors)
    options = parse_options(source)
    renderer = create_renderer(class_name, options=options, config=config, context=context)
    logging.info("Converting %s document", renderer.name)
    renderer.initialize(source)
    markup = renderer.parse_document()
    return ConversionResult(
        markup=markup,
        document_class=renderer.class_name,
        options=options,
        metadata=dict(renderer.metadata),
        blocks=list(renderer.state.blocks),
        labels=renderer.state.labels.entries,
    )
