"""
Feature registry — the documented column set of the Feature Table.

Every column the pipeline hands to modelling code is declared here, in
output order.  ``FeaturePipeline`` projects its final table onto these names
and ``dataset_builder`` derives the Parquet schema from them, so the two can
never drift apart.

Unlike a static list, lag and rolling column names depend on configuration
(``lag_offsets``, ``rolling_window``), and ``hour`` exists only for
sub-daily data.  ``build_feature_registry()`` therefore takes the feature
config and the resolved ``include_hour`` decision.

Groups
------
key          Timestamp and target measurement.
measurement  Extra numeric columns passed through unchanged.
calendar     Categorical fields from timestamp decomposition.
flag         0/1 indicators (weekend, holiday).
lag          Target value k rows earlier.
rolling      Trailing-window mean and residual.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from forecast_prep.features.calendar import (
    DAY_LABELS,
    DAY_OF_YEAR_LABELS,
    HOUR_LABELS,
    MONTH_LABELS,
    QUARTER_LABELS,
    SEMESTER_LABELS,
    WEEK_LABELS,
)
from forecast_prep.features.lags import lag_column
from forecast_prep.features.rolling import rolling_avg_column, rolling_diff_column

if TYPE_CHECKING:
    from forecast_prep.config import FeatureConfig


@dataclass(frozen=True)
class FeatureSpec:
    """Specification for a single Feature Table column.

    Attributes:
        name: Column name in the Feature Table and Parquet file.
        pa_type: Arrow type string recognised by ``dataset_builder``
            ("timestamp", "float64", "int64", "int8", "dict_utf8", "dict_int16").
        group: Logical group for filtering and documentation.
        description: Human-readable explanation of the column.
        categories: Fixed label vocabulary for categorical columns, else ``None``.
        requires_history: Rows of prior history needed before the column is
            defined.  Rows short of this are removed by the filtering stage.
    """

    name: str
    pa_type: str
    group: str
    description: str
    categories: tuple | None = None
    requires_history: int = 0


def _calendar_specs(include_hour: bool) -> list[FeatureSpec]:
    specs = [
        FeatureSpec("year",         "int64",      "calendar", "Calendar year."),
        FeatureSpec("month",        "dict_utf8",  "calendar", "Month label Jan … Dec.",
                    categories=MONTH_LABELS),
        FeatureSpec("day_of_week",  "dict_utf8",  "calendar", "Weekday label Sun … Sat.",
                    categories=DAY_LABELS),
    ]
    if include_hour:
        specs.append(
            FeatureSpec("hour", "dict_int16", "calendar", "Hour of day 0 … 23.",
                        categories=HOUR_LABELS)
        )
    specs += [
        FeatureSpec("day_of_year",  "dict_int16", "calendar", "Day of year 1 … 366.",
                    categories=DAY_OF_YEAR_LABELS),
        FeatureSpec("week_of_year", "dict_int16", "calendar", "ISO week number 1 … 53.",
                    categories=WEEK_LABELS),
        FeatureSpec("quarter",      "dict_int16", "calendar", "Calendar quarter 1 … 4.",
                    categories=QUARTER_LABELS),
        FeatureSpec("semester",     "dict_int16", "calendar", "Half-year 1 (Jan–Jun) or 2 (Jul–Dec).",
                    categories=SEMESTER_LABELS),
    ]
    return specs


def build_feature_registry(config: "FeatureConfig", include_hour: bool) -> list[FeatureSpec]:
    """Return the ordered column specs for one pipeline configuration."""
    target = config.target_col
    w = config.rolling_window

    specs: list[FeatureSpec] = [
        FeatureSpec(config.timestamp_col, "timestamp", "key",
                    f"Observation instant ({config.timezone})."),
        FeatureSpec(target, "float64", "key", "Target measurement."),
    ]
    specs += [
        FeatureSpec(col, "float64", "measurement", "Passed-through measurement.")
        for col in config.passthrough_cols
    ]
    specs += _calendar_specs(include_hour)

    if config.weekend_flag:
        specs.append(FeatureSpec(
            "is_weekend", "int8", "flag",
            f"1 if day_of_week in {{{', '.join(config.weekend_days)}}}, else 0.",
        ))
    if config.holiday_flag:
        specs.append(FeatureSpec(
            "holiday", "int8", "flag",
            f"1 if month in {{{', '.join(config.holiday_months)}}}, else 0.",
        ))

    specs += [
        FeatureSpec(lag_column(k), "float64", "lag",
                    f"{target} {k} row(s) earlier.", requires_history=k)
        for k in config.lag_offsets
    ]
    specs += [
        FeatureSpec(rolling_avg_column(w), "float64", "rolling",
                    f"Mean of {target} over the trailing {w} rows (inclusive).",
                    requires_history=w - 1),
        FeatureSpec(rolling_diff_column(w), "float64", "rolling",
                    f"{target} minus rolling_avg_{w}.", requires_history=w - 1),
    ]
    return specs


# ── Registry helpers ───────────────────────────────────────────────────────────


def feature_names(
    config: "FeatureConfig",
    include_hour: bool,
    group: str | None = None,
) -> list[str]:
    """Return column names, optionally filtered to a single group."""
    specs = build_feature_registry(config, include_hour)
    if group is None:
        return [f.name for f in specs]
    return [f.name for f in specs if f.group == group]


def model_feature_names(config: "FeatureConfig", include_hour: bool) -> list[str]:
    """Predictor columns only: everything except the ``key`` group."""
    return [
        f.name for f in build_feature_registry(config, include_hour)
        if f.group != "key"
    ]


def get_spec(config: "FeatureConfig", include_hour: bool, name: str) -> FeatureSpec:
    """Return the FeatureSpec for ``name``.

    Raises:
        KeyError: If ``name`` is not in the registry.
    """
    for spec in build_feature_registry(config, include_hour):
        if spec.name == name:
            return spec
    raise KeyError(f"Feature '{name}' not found in the feature registry.")


def feature_groups(config: "FeatureConfig", include_hour: bool) -> list[str]:
    """Return unique group names in registry order (no duplicates)."""
    seen: set[str] = set()
    result: list[str] = []
    for f in build_feature_registry(config, include_hour):
        if f.group not in seen:
            seen.add(f.group)
            result.append(f.group)
    return result
