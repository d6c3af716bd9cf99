"""
Timestamp parsing and calendar decomposition.

Purpose
-------
First stage of the feature pipeline.  ``parse_timestamps()`` turns the raw
timestamp column into timezone-aware instants under one fixed format and
sorts the table chronologically; ``decompose_calendar()`` then appends the
categorical calendar fields every later stage relies on.

Label vocabularies
------------------
Categorical fields are emitted as ``pandas.Categorical`` columns whose
categories are ALWAYS the full fixed vocabulary below, in this order, even
when a label never occurs in the data.  Downstream encoders (one-hot,
factor codes) therefore see identical columns across training runs.

    month         Jan … Dec
    day_of_week   Sun … Sat
    hour          0 … 23          (sub-daily data only)
    day_of_year   1 … 366
    week_of_year  1 … 53          (ISO week)
    quarter       1 … 4
    semester      1 … 2

Parse failures
--------------
A record whose timestamp cannot be read under the configured format is
dropped and counted.  So is a naive local time that does not exist, or is
ambiguous, in the configured timezone (DST transitions).  Neither is fatal.

In ISO mode (``timestamp_format=None``) a column may mix UTC offsets, and
may mix offset-aware with naive strings; aware values are converted to the
configured timezone and naive ones are localized to it.
"""

from __future__ import annotations

import pandas as pd

MONTH_LABELS: tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
DAY_LABELS: tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
HOUR_LABELS: tuple[int, ...] = tuple(range(24))
DAY_OF_YEAR_LABELS: tuple[int, ...] = tuple(range(1, 367))
WEEK_LABELS: tuple[int, ...] = tuple(range(1, 54))
QUARTER_LABELS: tuple[int, ...] = (1, 2, 3, 4)
SEMESTER_LABELS: tuple[int, ...] = (1, 2)

CALENDAR_FIELDS: tuple[str, ...] = (
    "year", "month", "day_of_week", "hour",
    "day_of_year", "week_of_year", "quarter", "semester",
)


# A time of day followed by "Z" or a numeric UTC offset, e.g. "T02:00:00+01:00".
_ISO_OFFSET_SUFFIX = r"\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?\s*(?:Z|[+-]\d{2}(?::?\d{2})?)$"


def _has_offset_directive(timestamp_format: str | None) -> bool:
    return timestamp_format is not None and (
        "%z" in timestamp_format or "%Z" in timestamp_format
    )


def _parse_utc(text: pd.Series, timestamp_format: str | None) -> pd.Series:
    return pd.to_datetime(
        text, format=timestamp_format or "ISO8601", errors="coerce", utc=True,
    )


def _to_instants(
    raw: pd.Series,
    timestamp_format: str | None,
    timezone: str,
) -> pd.Series:
    """Parse ``raw`` into tz-aware timestamps; failures become NaT.

    Every parse runs with ``utc=True`` so a column mixing UTC offsets (an
    ISO series crossing a DST change) or mixing naive and offset-aware
    strings never raises.  Naive strings come back as UTC wall-clock values,
    are stripped of the zone again and then localized to ``timezone``.
    """
    if pd.api.types.is_datetime64_any_dtype(raw):
        if raw.dt.tz is None:
            return raw.dt.tz_localize(timezone, ambiguous="NaT", nonexistent="NaT")
        return raw.dt.tz_convert(timezone)

    text = raw.astype("string").str.strip()
    if _has_offset_directive(timestamp_format):
        return _parse_utc(text, timestamp_format).dt.tz_convert(timezone)

    if timestamp_format is None:
        aware = text.str.contains(_ISO_OFFSET_SUFFIX, regex=True, na=False)
    else:
        aware = pd.Series(False, index=text.index)

    parsed = (
        _parse_utc(text.where(~aware), timestamp_format)
        .dt.tz_convert(None)
        .dt.tz_localize(timezone, ambiguous="NaT", nonexistent="NaT")
    )
    if aware.any():
        offset_aware = _parse_utc(text.where(aware), timestamp_format).dt.tz_convert(timezone)
        parsed = parsed.where(~aware, offset_aware)
    return parsed


def parse_timestamps(
    df: pd.DataFrame,
    timestamp_col: str,
    timestamp_format: str | None = "%Y-%m-%d %H:%M:%S",
    timezone: str = "UTC",
) -> tuple[pd.DataFrame, int]:
    """Parse the timestamp column and sort the table chronologically.

    Args:
        df:               Raw observation table.  Not modified.
        timestamp_col:    Name of the raw timestamp column.
        timestamp_format: ``strptime``-style format, or ``None`` for ISO-8601.
        timezone:         IANA zone.  Naive values are localized to it;
                          offset-aware values are converted to it.

    Returns:
        ``(table, dropped)`` where ``table`` holds only parseable records,
        stable-sorted ascending by timestamp with a fresh RangeIndex, and
        ``dropped`` is the number of records removed.
    """
    out = df.copy()
    out[timestamp_col] = _to_instants(out[timestamp_col], timestamp_format, timezone)

    unparsed = out[timestamp_col].isna()
    dropped = int(unparsed.sum())
    if dropped:
        out = out.loc[~unparsed]

    out = out.sort_values(timestamp_col, kind="stable").reset_index(drop=True)
    return out, dropped


def is_sub_daily(timestamps: pd.Series) -> bool:
    """Return True when the median spacing between timestamps is under one day."""
    if len(timestamps) < 2:
        return False
    spacing = timestamps.diff().dropna()
    return bool(spacing.median() < pd.Timedelta(days=1))


def _categorical(values, categories) -> pd.Categorical:
    return pd.Categorical(values, categories=list(categories))


def decompose_calendar(
    df: pd.DataFrame,
    timestamp_col: str,
    include_hour: bool,
) -> pd.DataFrame:
    """Append calendar fields derived from an already-parsed timestamp column.

    ``hour`` is only added when ``include_hour`` is True.
    """
    out = df.copy()
    ts = out[timestamp_col].dt

    out["year"] = ts.year.astype("int64")
    out["month"] = pd.Categorical.from_codes(
        (ts.month - 1).to_numpy(), categories=list(MONTH_LABELS)
    )
    # pandas counts Monday=0; the label set starts on Sunday.
    out["day_of_week"] = pd.Categorical.from_codes(
        ((ts.dayofweek + 1) % 7).to_numpy(), categories=list(DAY_LABELS)
    )
    if include_hour:
        out["hour"] = _categorical(ts.hour.to_numpy(), HOUR_LABELS)
    out["day_of_year"] = _categorical(ts.dayofyear.to_numpy(), DAY_OF_YEAR_LABELS)
    out["week_of_year"] = _categorical(
        ts.isocalendar().week.astype("int64").to_numpy(), WEEK_LABELS
    )
    out["quarter"] = _categorical(ts.quarter.to_numpy(), QUARTER_LABELS)
    out["semester"] = _categorical(((ts.month - 1) // 6 + 1).to_numpy(), SEMESTER_LABELS)
    return out
