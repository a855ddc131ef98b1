"""Engine configuration: dataclass defaults plus a YAML/JSON loader."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError


@dataclass
class ShiftWindowConfig:
    start: str = "09:00"
    end: str = "18:00"


@dataclass
class ScoringWeights:
    """Weights of the candidate score used by the assignment engine."""

    headroom: float = 1.0
    preference: float = 1.0
    history: float = 0.5
    soft_target: float = 0.1
    min_hours: float = 0.25


@dataclass
class RestCosts:
    """Cost points used to rank weekdays for rest (lower is better)."""

    per_extra_staff: float = 15.0
    per_multiplier_point: float = 20.0
    critical_period: float = 25.0
    coverage_risk: float = 50.0
    team_load: float = 10.0
    weekend_discount: float = 5.0


@dataclass
class EngineConfig:
    max_shifts_per_day: int = 2
    min_rest_hours: float = 8.0
    default_shift: ShiftWindowConfig = field(default_factory=ShiftWindowConfig)
    half_day_split: str = "14:00"
    half_day_hours: float = 4.0
    weeks_per_month: float = 4.33
    default_weekly_hours: float = 40.0
    default_rest_quantity: int = 2
    history_weeks: int = 4
    preferred_bonus: float = 1.0
    unavailable_penalty: float = -5.0
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    rest_costs: RestCosts = field(default_factory=RestCosts)
    db_url: str = "sqlite:///shiftgen.db"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_NESTED = {
    "default_shift": ShiftWindowConfig,
    "weights": ScoringWeights,
    "rest_costs": RestCosts,
}


def _read_raw(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"config: cannot read {path}: {exc}") from exc
    try:
        if path.suffix.lower() == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"config: cannot parse {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config: top level of {path} must be a mapping")
    return raw


def _coerce(label: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"config: {label} must be a boolean (found: {value!r})")
        return value
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"config: {label} must be an integer (found: {value!r})")
        return value
    if isinstance(default, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"config: {label} must be a number (found: {value!r})")
        return float(value)
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ConfigError(f"config: {label} must be a string (found: {value!r})")
        return value
    return value


def _build(cls, raw: Dict[str, Any], prefix: str = ""):
    defaults = cls()
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"config: unknown keys {', '.join(prefix + k for k in unknown)}")
    kwargs: Dict[str, Any] = {}
    for key, value in raw.items():
        label = prefix + key
        if key in _NESTED and prefix == "":
            if not isinstance(value, dict):
                raise ConfigError(f"config: {label} must be a mapping")
            kwargs[key] = _build(_NESTED[key], value, prefix=f"{label}.")
        else:
            kwargs[key] = _coerce(label, value, getattr(defaults, key))
    return cls(**kwargs)


def _validate(cfg: EngineConfig) -> None:
    from .services.intervals import parse_time

    if cfg.max_shifts_per_day < 1:
        raise ConfigError("config: max_shifts_per_day must be >= 1")
    if cfg.min_rest_hours < 0:
        raise ConfigError("config: min_rest_hours must be >= 0")
    if cfg.half_day_hours <= 0:
        raise ConfigError("config: half_day_hours must be > 0")
    if cfg.weeks_per_month <= 0:
        raise ConfigError("config: weeks_per_month must be > 0")
    if cfg.default_weekly_hours < 0:
        raise ConfigError("config: default_weekly_hours must be >= 0")
    if cfg.default_rest_quantity < 0:
        raise ConfigError("config: default_rest_quantity must be >= 0")
    if cfg.history_weeks < 1:
        raise ConfigError("config: history_weeks must be >= 1")
    if cfg.unavailable_penalty > 0:
        raise ConfigError("config: unavailable_penalty must be <= 0")
    for label, value in (
        ("default_shift.start", cfg.default_shift.start),
        ("default_shift.end", cfg.default_shift.end),
        ("half_day_split", cfg.half_day_split),
    ):
        try:
            parse_time(value)
        except ValueError as exc:
            raise ConfigError(f"config: {label} is not a valid HH:MM time ({value!r})") from exc


def load_config(path: Optional[str | Path] = None) -> EngineConfig:
    """
    Load engine configuration.

    Args:
        path: YAML (``.yaml``/``.yml``) or JSON file. ``None`` returns defaults.

    Returns:
        Validated EngineConfig

    Raises:
        ConfigError: If the file is unreadable, malformed or out of range
    """
    if path is None:
        cfg = EngineConfig()
    else:
        cfg = _build(EngineConfig, _read_raw(Path(path)))
    _validate(cfg)
    return cfg
