"""
FeaturePipeline — raw observations in, analysis-ready Feature Table out.

Stage order
-----------
1.  ``calendar.parse_timestamps()``      parse, drop + count failures, sort
2.  ``calendar.decompose_calendar()``    year, month, day_of_week, [hour], …
3.  ``lags.add_lag_features()``          lag_k per configured offset
4.  ``rolling.add_rolling_features()``   rolling_avg_w, rolling_diff_w
5.  ``flags.add_weekend_flag()`` / ``flags.add_holiday_flag()``
6.  projection onto ``registry.build_feature_registry()`` columns
7.  ``filtering.drop_incomplete_rows()`` drop + count undefined-feature rows
8.  ``quality.build_quality_report()``

Steps 3–5 each read only the output of step 2 and are order-independent.
Every stage returns a new DataFrame; the caller's table is never modified,
and two runs over the same input produce ``DataFrame.equals``-identical output.

Errors
------
- Invalid options → ``ConfigurationError`` when the pipeline is constructed.
- Missing / non-numeric timestamp, target or passthrough columns →
  ``ConfigurationError`` from ``run()`` before any stage executes.
- Unparseable timestamps are not errors; see ``FeatureBuildResult.dropped_unparseable``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import pandas as pd
from pydantic import ValidationError

from forecast_prep.config import FeatureConfig
from forecast_prep.features.calendar import decompose_calendar, is_sub_daily, parse_timestamps
from forecast_prep.features.filtering import drop_incomplete_rows
from forecast_prep.features.flags import add_holiday_flag, add_weekend_flag
from forecast_prep.features.lags import add_lag_features
from forecast_prep.features.quality import DataQualityReport, build_quality_report
from forecast_prep.features.registry import feature_names
from forecast_prep.features.rolling import add_rolling_features

log = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when the pipeline cannot run with the given options or input columns."""


@dataclass(frozen=True)
class FeatureBuildResult:
    """Output of one ``FeaturePipeline.run()`` call.

    Attributes:
        table:               The Feature Table, registry column order.
        dropped_unparseable: Records removed because the timestamp failed to parse.
        dropped_incomplete:  Rows removed because a lag/rolling value was undefined.
        include_hour:        Whether the ``hour`` field was produced.
        quality:             Quality report for ``table``.
    """

    table: pd.DataFrame
    dropped_unparseable: int
    dropped_incomplete: int
    include_hour: bool
    quality: DataQualityReport


class FeaturePipeline:
    """Configured, reusable feature pipeline.

    Args:
        config: A ``FeatureConfig``, a mapping of its fields, or ``None`` for
            defaults.

    Raises:
        ConfigurationError: If a mapping fails ``FeatureConfig`` validation
            (e.g. ``rolling_window=0``).
    """

    def __init__(self, config: FeatureConfig | Mapping[str, Any] | None = None) -> None:
        if config is None:
            config = FeatureConfig()
        elif not isinstance(config, FeatureConfig):
            try:
                config = FeatureConfig(**dict(config))
            except ValidationError as exc:
                raise ConfigurationError(f"Invalid feature configuration: {exc}") from exc
        self.config: FeatureConfig = config

    # ── Public API ─────────────────────────────────────────────────────────────

    def run(self, df: pd.DataFrame) -> FeatureBuildResult:
        """Build the Feature Table from a raw observation table."""
        cfg = self.config
        self._check_columns(df)

        table = df.copy()
        for col in [cfg.target_col, *cfg.passthrough_cols]:
            table[col] = table[col].astype("float64")

        table, dropped_unparseable = parse_timestamps(
            table, cfg.timestamp_col, cfg.timestamp_format, cfg.timezone
        )
        if dropped_unparseable:
            log.warning(
                "Dropped %d record(s) with unparseable '%s' (format=%r).",
                dropped_unparseable, cfg.timestamp_col, cfg.timestamp_format,
            )

        include_hour = (
            cfg.include_hour if cfg.include_hour is not None
            else is_sub_daily(table[cfg.timestamp_col])
        )
        table = decompose_calendar(table, cfg.timestamp_col, include_hour)

        table = add_lag_features(table, cfg.target_col, cfg.lag_offsets)
        table = add_rolling_features(table, cfg.target_col, cfg.rolling_window)
        if cfg.weekend_flag:
            table = add_weekend_flag(table, cfg.weekend_days)
        if cfg.holiday_flag:
            table = add_holiday_flag(table, cfg.holiday_months)

        columns = feature_names(cfg, include_hour)
        table = table[columns]

        required = (
            feature_names(cfg, include_hour, group="measurement")
            + feature_names(cfg, include_hour, group="lag")
            + feature_names(cfg, include_hour, group="rolling")
        )
        filtered = drop_incomplete_rows(table, required)

        quality = build_quality_report(
            filtered.table,
            cfg.timestamp_col,
            columns,
            dropped_unparseable=dropped_unparseable,
            dropped_incomplete=filtered.dropped,
        )
        if not quality.is_clean:
            log.warning(
                "Feature Table failed quality checks: %d duplicate timestamps, ascending=%s",
                quality.duplicate_timestamp_count, quality.is_strictly_ascending,
            )

        log.info(
            "Feature Table built: rows=%d  columns=%d  dropped_unparseable=%d  dropped_incomplete=%d",
            len(filtered.table), len(columns), dropped_unparseable, filtered.dropped,
        )
        return FeatureBuildResult(
            table=filtered.table,
            dropped_unparseable=dropped_unparseable,
            dropped_incomplete=filtered.dropped,
            include_hour=include_hour,
            quality=quality,
        )

    # ── Internal helpers ───────────────────────────────────────────────────────

    def _check_columns(self, df: pd.DataFrame) -> None:
        cfg = self.config
        wanted = [cfg.timestamp_col, cfg.target_col, *cfg.passthrough_cols]
        missing = [c for c in wanted if c not in df.columns]
        if missing:
            raise ConfigurationError(
                f"Input table is missing configured column(s): {missing}. "
                f"Available: {list(df.columns)}"
            )

        for col in [cfg.target_col, *cfg.passthrough_cols]:
            if not pd.api.types.is_numeric_dtype(df[col]):
                raise ConfigurationError(
                    f"Column '{col}' must be numeric, got dtype {df[col].dtype}."
                )
