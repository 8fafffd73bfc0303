from __future__ import annotations

from dataclasses import dataclass, field

LINE_HEIGHT = 1.6
SCRIPT_SCALE = 0.8

DIAGRAM_UNIT_PX = 50
DIAGRAM_MARGIN_PX = 20
DIAGRAM_EMPTY_SIZE_PX = 200

BORDER_STYLE = "1px solid #333"

# xcolor base names; `!` mixes are reduced to the leading name
COLORS = {
    "black": "#000000",
    "white": "#ffffff",
    "red": "#ff0000",
    "green": "#00ff00",
    "blue": "#0000ff",
    "yellow": "#ffff00",
    "cyan": "#00ffff",
    "magenta": "#ff00ff",
    "orange": "#ff8000",
    "purple": "#800080",
    "brown": "#a52a2a",
    "pink": "#ffc0cb",
    "gray": "#808080",
    "lightgray": "#d3d3d3",
    "darkgray": "#404040",
    "lime": "#00ff00",
    "navy": "#000080",
    "teal": "#008080",
    "olive": "#808000",
    "violet": "#ee82ee",
}

LINE_WIDTHS = {
    "ultra thin": 0.1,
    "very thin": 0.2,
    "thin": 0.4,
    "semithick": 0.6,
    "thick": 0.8,
    "very thick": 1.2,
    "ultra thick": 1.6,
}


@dataclass(frozen=True)
class StyleOptions:
    line_height: float = LINE_HEIGHT
    script_scale: float = SCRIPT_SCALE
    row_colors: dict[int, str] = field(default_factory=dict)
    column_colors: dict[int, str] = field(default_factory=dict)
    border_style: str = BORDER_STYLE
    diagram_unit: float = DIAGRAM_UNIT_PX
    diagram_margin: float = DIAGRAM_MARGIN_PX
    diagram_origin: tuple[float, float] = (0.0, 0.0)
    diagram_scale: float = 1.0


def resolve_color(name: str | None, default: str = "black") -> str:
    """Map an xcolor expression to a CSS colour."""
    if not name:
        return default
    name = name.strip()
    if name.startswith("#") or name == "none":
        return name
    base = name.split("!", 1)[0].strip()
    return COLORS.get(base, base or default)
