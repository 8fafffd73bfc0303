from __future__ import annotations

import logging
import re
from typing import Dict, List, Type

from .config import RenderConfig
from .errors import NoDocumentClassError, UnsupportedClassError
from .model import RenderContext
from .renderers import ArticleRenderer, BaseRenderer, BookRenderer, IEEETranRenderer, ReportRenderer
from .scanner import parse_keyval
from .structure import strip_comments

_DOCUMENT_CLASS = re.compile(r"\\documentclass(\[.*?\])?\{([^}]+)\}", re.DOTALL)

RENDERERS: Dict[str, Type[BaseRenderer]] = {
    "article": ArticleRenderer,
    "report": ReportRenderer,
    "book": BookRenderer,
    "memoir": BookRenderer,
    "IEEEtran": IEEETranRenderer,
}
_LOOKUP = {name.lower(): name for name in RENDERERS}


def list_supported_classes() -> List[str]:
    return list(RENDERERS)


def _declaration(source: str) -> re.Match[str] | None:
    return _DOCUMENT_CLASS.search(strip_comments(source or ""))


def detect_class(source: str) -> str:
    match = _declaration(source)
    if not match:
        raise NoDocumentClassError()
    return match.group(2).strip()


def parse_options(source: str) -> dict:
    """Options of the `\\documentclass` declaration: `key=value` strings, flags as True."""
    match = _declaration(source)
    if not match or not match.group(1):
        return {}
    return parse_keyval(match.group(1)[1:-1])


def create_renderer(
    class_name: str,
    options: dict | None = None,
    config: RenderConfig | None = None,
    context: RenderContext | None = None,
) -> BaseRenderer:
    key = _LOOKUP.get(class_name.strip().lower())
    if key is None:
        raise UnsupportedClassError(class_name, list_supported_classes())
    logging.debug("Using %s renderer for class %s", RENDERERS[key].__name__, class_name)
    renderer = RENDERERS[key](options=options, config=config, context=context)
    renderer.class_name = key
    return renderer
