"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local env overrides (gitignored)
  4. Environment variables        — ``FORECAST_PREP_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The feature pipeline, pipeline stages and CLI commands all receive a config
object — lag offsets, window sizes and flag label sets are never hard-coded
inside the transformation functions.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from forecast_prep.features.calendar import DAY_LABELS, MONTH_LABELS

# ── Sub-config models ─────────────────────────────────────────────────────────


class DataConfig(BaseModel):
    """Filesystem paths for raw input and processed output."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    input_path: str = "data/raw/observations.csv"
    processed_dir: str = "data/processed"
    runs_dir: str = "data/runs"


class FeatureConfig(BaseModel):
    """Feature pipeline parameters.

    Defaults match the hourly energy-load walkthrough: lags at
    1/2/3/4/6/12 periods, a 3-period rolling window, UTC timestamps.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timestamp_col: str = "timestamp"
    target_col: str = "load"
    passthrough_cols: tuple[str, ...] = ()
    timestamp_format: Optional[str] = "%Y-%m-%d %H:%M:%S"
    timezone: str = "UTC"
    include_hour: Optional[bool] = None   # None → inferred from spacing
    lag_offsets: tuple[int, ...] = (1, 2, 3, 4, 6, 12)
    rolling_window: int = 3
    weekend_flag: bool = True
    weekend_days: tuple[str, ...] = ("Sat", "Sun")
    holiday_flag: bool = False
    holiday_months: tuple[str, ...] = ("Dec", "Jan")

    @field_validator("timestamp_col", "target_col")
    @classmethod
    def validate_column_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Column names must be non-empty strings.")
        return v

    @model_validator(mode="after")
    def validate_distinct_columns(self) -> "FeatureConfig":
        keys = {self.timestamp_col, self.target_col}
        if len(keys) < 2:
            raise ValueError("timestamp_col and target_col must differ.")
        clash = [c for c in self.passthrough_cols if c in keys]
        if clash:
            raise ValueError(
                f"passthrough_cols must not repeat the timestamp or target column: {clash}."
            )
        return self

    @field_validator("lag_offsets")
    @classmethod
    def validate_lag_offsets(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if not v:
            raise ValueError("lag_offsets must contain at least one offset.")
        bad = [k for k in v if k <= 0]
        if bad:
            raise ValueError(f"lag_offsets must be positive integers, got {bad}.")
        if len(set(v)) != len(v):
            raise ValueError(f"lag_offsets must not repeat, got {list(v)}.")
        return v

    @field_validator("rolling_window")
    @classmethod
    def validate_rolling_window(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"rolling_window must be a positive integer, got {v}.")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone '{v}'.") from exc
        return v

    @field_validator("weekend_days")
    @classmethod
    def validate_weekend_days(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [d for d in v if d not in DAY_LABELS]
        if unknown:
            raise ValueError(
                f"weekend_days must be drawn from {list(DAY_LABELS)}, got {unknown}."
            )
        return v

    @field_validator("holiday_months")
    @classmethod
    def validate_holiday_months(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [m for m in v if m not in MONTH_LABELS]
        if unknown:
            raise ValueError(
                f"holiday_months must be drawn from {list(MONTH_LABELS)}, got {unknown}."
            )
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "INFO"
    log_file: str = "data/logs/forecast_prep.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + env vars.
    """

    model_config = ConfigDict(frozen=True)

    data: DataConfig = DataConfig()
    features: FeatureConfig = FeatureConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply FORECAST_PREP_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply FORECAST_PREP_* env vars to the raw config dict.

    Supported overrides:
      FORECAST_PREP_INPUT_PATH  → raw["data"]["input_path"]
      FORECAST_PREP_TARGET_COL  → raw["features"]["target_col"]
      FORECAST_PREP_LOG_LEVEL   → raw["logging"]["level"]
      FORECAST_PREP_DEBUG       → raw["debug"]
    """
    if input_path := os.environ.get("FORECAST_PREP_INPUT_PATH"):
        raw.setdefault("data", {})["input_path"] = input_path

    if target_col := os.environ.get("FORECAST_PREP_TARGET_COL"):
        raw.setdefault("features", {})["target_col"] = target_col

    if log_level := os.environ.get("FORECAST_PREP_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("FORECAST_PREP_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        data=DataConfig(**raw.get("data", {})),
        features=FeatureConfig(**raw.get("features", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
