from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence


@dataclass(frozen=True)
class SourceDocument:
    """Sanitized source text plus the class declaration and metadata."""

    text: str
    document_class: str
    options: dict[str, Any] = field(default_factory=dict)
    title: str = "Untitled Document"
    author: str = "Unknown Author"
    date: str = ""


@dataclass
class Block:
    """Base class for block-level nodes recorded in the outline."""


@dataclass
class Heading(Block):
    level: int
    title: str
    id: str
    number: str | None = None
    command: str = "section"


@dataclass
class Paragraph(Block):
    text: str


@dataclass
class EnvironmentBlock(Block):
    name: str
    content: str
    options: str | None = None


@dataclass
class ListBlock(Block):
    kind: str
    items: List[str]


@dataclass
class FloatBlock(Block):
    kind: str
    caption: str | None
    label: str | None
    placement: str | None
    body: str
    number: str
    id: str = ""


@dataclass
class Counter:
    name: str
    value: int = 0
    parent: Optional[str] = None


@dataclass
class LabelEntry:
    key: str
    number: str
    kind: str
    anchor: str
    parent: str | None = None


@dataclass
class TocEntry:
    level: int
    number: str | None
    title: str
    anchor: str
    command: str = "section"


@dataclass
class DiagramElement:
    """Base class for diagram primitives in pixel space."""


@dataclass
class PathElement(DiagramElement):
    points: List[tuple[float, float]]
    closed: bool = False
    stroke: str = "black"
    fill: str = "none"
    width: float = 0.4
    dash: str | None = None
    arrow_start: bool = False
    arrow_end: bool = False
    opacity: float | None = None


@dataclass
class NodeElement(DiagramElement):
    position: tuple[float, float]
    text: str
    shape: str | None = None
    dimensions: tuple[float, float] = (0.0, 0.0)
    stroke: str = "black"
    fill: str = "none"
    anchor: str = "middle"
    color: str = "black"


@dataclass
class ShapeElement(DiagramElement):
    kind: str
    position: tuple[float, float]
    dimensions: tuple[float, float]
    stroke: str = "black"
    fill: str = "none"
    width: float = 0.4
    dash: str | None = None
    opacity: float | None = None


@dataclass
class RenderContext:
    theme: str = "default"


@dataclass
class ValidationReport:
    ok: bool
    errors: List[str] = field(default_factory=list)


@dataclass
class ConversionResult:
    markup: str
    document_class: str
    options: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, str] = field(default_factory=dict)
    blocks: Sequence[Block] = field(default_factory=list)
    labels: dict[str, LabelEntry] = field(default_factory=dict)
