import textwrap
from pathlib import Path

import pytest

from TexPreview.config import RenderConfig, load_config, parse_config


def test_defaults_when_empty():
    assert parse_config("") == RenderConfig()


def test_nested_sections_are_coerced():
    config = parse_config(
        textwrap.dedent(
            """
            theme: dark
            strict_environments: "no"
            date: 2024-01-02
            math:
              script_scale: 0.7
            diagram:
              unit_px: 40
              origin_x: 5
            code:
              default_language: python
              copy_button: false
            """
        )
    )
    assert config.theme == "dark"
    assert config.strict_environments is False
    assert config.date == "2024-01-02"
    assert config.script_scale == 0.7
    assert config.diagram_unit == 40.0
    assert config.default_language == "python"
    assert config.copy_button is False
    style = config.style_options()
    assert style.diagram_unit == 40.0
    assert style.diagram_origin == (5.0, 0.0)
    assert style.script_scale == 0.7


def test_unknown_keys_are_ignored():
    config = parse_config("colour: red\nmath:\n  font: serif\n")
    assert config == RenderConfig()


def test_non_mapping_root_is_rejected():
    with pytest.raises(ValueError, match="Config root must be a mapping"):
        parse_config("- a\n- b\n")


def test_bad_values_are_reported():
    with pytest.raises(ValueError, match="math.script_scale"):
        parse_config("math:\n  script_scale: big\n")
    with pytest.raises(ValueError, match="'diagram' must be a mapping"):
        parse_config("diagram: 3\n")


def test_load_config_from_file(tmp_path: Path):
    path = tmp_path / "settings.yaml"
    path.write_text("theme: paper\n", encoding="utf-8")
    assert load_config(path).theme == "paper"
