"""
Configuration loading and validation for the stakeplan application.

This module uses standard library dataclasses for configuration objects.
Engine constants are validated up front. Session values are passed through
untouched, since the engine answers out-of-range sessions with neutral
results rather than errors.
"""

import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Type, cast

from stakeplan.target import BASE_RISK_FRACTION, BENCHMARK_WIN_RATE
from stakeplan.types import SessionParameters

__all__ = ["load_config", "Config", "SessionConfig", "EngineConfig", "ReportingConfig"]


# §1. Nested Configuration Dataclasses
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionConfig:
    name: str
    capital: float
    total_trades: int
    accuracy: float
    risk_reward_ratio: float

    @property
    def parameters(self) -> SessionParameters:
        return SessionParameters(
            capital=self.capital,
            total_trades=self.total_trades,
            accuracy=self.accuracy,
            risk_reward_ratio=self.risk_reward_ratio,
        )


@dataclass(frozen=True)
class EngineConfig:
    benchmark_win_rate: float = BENCHMARK_WIN_RATE
    base_risk_fraction: float = BASE_RISK_FRACTION
    alignment_tolerance: float = 0.01
    max_alignment_passes: int = 3


@dataclass(frozen=True)
class ReportingConfig:
    output_dir: Path = Path("runs")
    output_formats: List[Literal["json", "markdown", "csv"]] = field(
        default_factory=lambda: ["json", "markdown", "csv"]
    )


# §2. Top-Level Configuration
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class Config:
    """The root configuration object, composing all nested sections."""
    session: SessionConfig
    engine: EngineConfig = field(default_factory=EngineConfig)
    reporting: ReportingConfig = field(default_factory=ReportingConfig)


# §3. Validation and Loading
# --------------------------------------------------------------------------------------


def _from_dict(data_class: Type[Any], data: Any) -> Any:
    """Recursively creates nested dataclasses from a dictionary."""
    if isinstance(data, dict) and hasattr(data_class, "__dataclass_fields__"):
        field_types = {f.name: f.type for f in data_class.__dataclass_fields__.values()}

        kwargs = {}
        for k, v in data.items():
            field_type = field_types.get(k)
            # Unknown keys pass through and the constructor rejects them.
            kwargs[k] = _from_dict(field_type, v) if field_type else v
        return data_class(**kwargs)

    # Convert path strings to Path objects
    if isinstance(data, str) and data_class is Path:
        return Path(data)
    return data


def _validate_config(cfg: Dict[str, Any]) -> None:
    """
    Performs simple, explicit validation checks on the raw config dictionary.
    Fail fast on any logical inconsistencies.
    """
    if not isinstance(cfg, dict):
        raise ValueError("Configuration must be a YAML object.")

    if not isinstance(cfg.get("session"), dict):
        raise ValueError("Configuration must contain a 'session' section.")

    engine = cfg.get("engine") or {}
    if not isinstance(engine, dict):
        raise ValueError("'engine' must be a mapping.")

    for key in ("benchmark_win_rate", "base_risk_fraction", "alignment_tolerance", "max_alignment_passes"):
        value = engine.get(key, 0)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"engine.{key} must be a number")

    benchmark = engine.get("benchmark_win_rate", BENCHMARK_WIN_RATE)
    if not 0 < benchmark < 1:
        raise ValueError("engine.benchmark_win_rate must be between 0 and 1")

    risk_fraction = engine.get("base_risk_fraction", BASE_RISK_FRACTION)
    if not 0 < risk_fraction < 1:
        raise ValueError("engine.base_risk_fraction must be between 0 and 1")

    if engine.get("alignment_tolerance", 0.01) <= 0:
        raise ValueError("engine.alignment_tolerance must be positive")

    if engine.get("max_alignment_passes", 3) < 1:
        raise ValueError("engine.max_alignment_passes must be at least 1")

    formats = (cfg.get("reporting") or {}).get("output_formats", [])
    unknown = set(formats) - {"json", "markdown", "csv"}
    if unknown:
        raise ValueError(f"Unknown reporting.output_formats: {sorted(unknown)}")


# impure
def load_config(config_path: Path) -> Config:
    """
    Loads and validates a YAML configuration file into a Config object.
    #impure: Reads from the filesystem.
    """
    if not config_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {config_path}: {e}") from e

    # Perform validation before trying to create the objects
    _validate_config(raw_config)

    try:
        # _from_dict is too dynamic for mypy to follow, hence the cast.
        return cast(Config, _from_dict(Config, raw_config))
    except (TypeError, KeyError) as e:
        raise ValueError(f"Configuration validation failed: missing or invalid key. Details: {e}") from e
