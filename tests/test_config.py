"""Tests for configuration loading."""

import pytest

from shiftgen.config import EngineConfig, load_config
from shiftgen.errors import ConfigError


def test_defaults():
    cfg = load_config()
    assert cfg == EngineConfig()
    assert cfg.max_shifts_per_day == 2
    assert cfg.min_rest_hours == 8.0
    assert cfg.half_day_hours == 4.0
    assert cfg.default_shift.start == "09:00"


def test_yaml_overrides(tmp_path):
    path = tmp_path / "engine.yaml"
    path.write_text(
        "max_shifts_per_day: 3\n"
        "min_rest_hours: 11\n"
        "default_shift:\n"
        "  start: '08:00'\n"
        "weights:\n"
        "  preference: 2.5\n"
        "rest_costs:\n"
        "  coverage_risk: 80\n"
    )

    cfg = load_config(path)

    assert cfg.max_shifts_per_day == 3
    assert cfg.min_rest_hours == 11.0
    assert isinstance(cfg.min_rest_hours, float)
    assert cfg.default_shift.start == "08:00"
    assert cfg.default_shift.end == "18:00"
    assert cfg.weights.preference == 2.5
    assert cfg.weights.headroom == 1.0
    assert cfg.rest_costs.coverage_risk == 80.0


def test_json_config(tmp_path):
    path = tmp_path / "engine.json"
    path.write_text('{"history_weeks": 8}')
    assert load_config(str(path)).history_weeks == 8


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == EngineConfig()


@pytest.mark.parametrize(
    "content, message",
    [
        ("max_shift_per_day: 3\n", "unknown keys max_shift_per_day"),
        ("weights:\n  popularity: 1\n", "unknown keys weights.popularity"),
        ("max_shifts_per_day: two\n", "must be an integer"),
        ("max_shifts_per_day: true\n", "must be an integer"),
        ("min_rest_hours: -1\n", "min_rest_hours must be >= 0"),
        ("half_day_split: '25:00'\n", "half_day_split is not a valid"),
        ("weights: 3\n", "weights must be a mapping"),
        ("- a\n- b\n", "must be a mapping"),
        ("unavailable_penalty: 2\n", "unavailable_penalty must be <= 0"),
    ],
)
def test_invalid_config(tmp_path, content, message):
    path = tmp_path / "bad.yaml"
    path.write_text(content)
    with pytest.raises(ConfigError) as exc_info:
        load_config(path)
    assert message in str(exc_info.value)


def test_unparseable_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("weights: [1, 2\n")
    with pytest.raises(ConfigError, match="cannot parse"):
        load_config(path)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="cannot read"):
        load_config(tmp_path / "nope.yaml")


def test_to_dict_round_trips_nested_sections():
    data = EngineConfig().to_dict()
    assert data["weights"]["history"] == 0.5
    assert data["rest_costs"]["weekend_discount"] == 5.0
