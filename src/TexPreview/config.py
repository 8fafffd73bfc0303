from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .style import DIAGRAM_MARGIN_PX, DIAGRAM_UNIT_PX, LINE_HEIGHT, SCRIPT_SCALE, StyleOptions


@dataclass(frozen=True)
class RenderConfig:
    theme: str = "default"
    strict_environments: bool = True
    date: str | None = None
    script_scale: float = SCRIPT_SCALE
    line_height: float = LINE_HEIGHT
    diagram_unit: float = DIAGRAM_UNIT_PX
    diagram_margin: float = DIAGRAM_MARGIN_PX
    diagram_origin_x: float = 0.0
    diagram_origin_y: float = 0.0
    diagram_scale: float = 1.0
    default_language: str = "text"
    copy_button: bool = True

    def style_options(self) -> StyleOptions:
        return StyleOptions(
            line_height=self.line_height,
            script_scale=self.script_scale,
            diagram_unit=self.diagram_unit,
            diagram_margin=self.diagram_margin,
            diagram_origin=(self.diagram_origin_x, self.diagram_origin_y),
            diagram_scale=self.diagram_scale,
        )


# YAML path -> RenderConfig field
_KEYS = {
    ("theme",): "theme",
    ("strict_environments",): "strict_environments",
    ("date",): "date",
    ("math", "script_scale"): "script_scale",
    ("math", "line_height"): "line_height",
    ("diagram", "unit_px"): "diagram_unit",
    ("diagram", "margin_px"): "diagram_margin",
    ("diagram", "origin_x"): "diagram_origin_x",
    ("diagram", "origin_y"): "diagram_origin_y",
    ("diagram", "scale"): "diagram_scale",
    ("code", "default_language"): "default_language",
    ("code", "copy_button"): "copy_button",
}
_SECTIONS = {path[0] for path in _KEYS if len(path) == 2}


def parse_config(text: str) -> RenderConfig:
    """Parse a YAML settings document into a RenderConfig."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError("Config root must be a mapping.")
    return config_from_mapping(data)


def load_config(path: Path | str) -> RenderConfig:
    path = Path(path).expanduser()
    logging.debug("Loading config from %s", path)
    return parse_config(path.read_text(encoding="utf-8"))


def config_from_mapping(data: dict) -> RenderConfig:
    types = {f.name: f.type for f in fields(RenderConfig)}
    values: dict[str, Any] = {}
    for key, value in data.items():
        if key in _SECTIONS:
            if value is None:
                continue
            if not isinstance(value, dict):
                raise ValueError(f"Config section '{key}' must be a mapping.")
            for sub_key, sub_value in value.items():
                name = _KEYS.get((key, sub_key))
                if name is None:
                    logging.debug("Ignoring unknown config key %s.%s", key, sub_key)
                    continue
                values[name] = _coerce(f"{key}.{sub_key}", sub_value, types[name])
            continue
        name = _KEYS.get((key,))
        if name is None:
            logging.debug("Ignoring unknown config key %s", key)
            continue
        values[name] = _coerce(key, value, types[name])
    return replace(RenderConfig(), **values)


def _coerce(key: str, value: Any, annotation: str) -> Any:
    if value is None:
        if "None" in annotation:
            return None
        raise ValueError(f"Config key '{key}' cannot be empty.")
    try:
        if annotation.startswith("bool"):
            if isinstance(value, str):
                return value.strip().lower() in {"1", "true", "yes", "on"}
            return bool(value)
        if annotation.startswith("float"):
            return float(value)
        return str(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Config key '{key}' has an invalid value: {value!r}") from exc
