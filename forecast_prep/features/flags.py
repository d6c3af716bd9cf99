"""
Binary indicator fields derived from decomposed calendar fields.

Two independent policies, each with its own label set:

- ``is_weekend`` — 1 iff ``day_of_week`` is in the weekend set
  (default Sat/Sun).  Used for the hourly load data.
- ``holiday``    — 1 iff ``month`` is in the holiday-month set
  (default Dec/Jan).  Used for monthly aggregates.  This is a coarse
  placeholder; no holiday calendar is consulted.

Both are pure functions of columns produced by ``calendar.decompose_calendar()``
and can run in either order.
"""

from __future__ import annotations

from collections.abc import Collection

import pandas as pd

DEFAULT_WEEKEND_DAYS: tuple[str, ...] = ("Sat", "Sun")
DEFAULT_HOLIDAY_MONTHS: tuple[str, ...] = ("Dec", "Jan")


class MissingCalendarFieldError(KeyError):
    """Raised when a flag is derived before calendar decomposition has run.

    Attributes:
        field_name: The calendar column that was expected.
    """

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(
            f"Calendar field '{field_name}' not found.  "
            "Run decompose_calendar() before deriving flags."
        )


def _flag(df: pd.DataFrame, field_name: str, labels: Collection[str]) -> pd.Series:
    if field_name not in df.columns:
        raise MissingCalendarFieldError(field_name)
    return df[field_name].isin(list(labels)).astype("int8")


def add_weekend_flag(
    df: pd.DataFrame,
    weekend_days: Collection[str] = DEFAULT_WEEKEND_DAYS,
) -> pd.DataFrame:
    out = df.copy()
    out["is_weekend"] = _flag(out, "day_of_week", weekend_days)
    return out


def add_holiday_flag(
    df: pd.DataFrame,
    holiday_months: Collection[str] = DEFAULT_HOLIDAY_MONTHS,
) -> pd.DataFrame:
    out = df.copy()
    out["holiday"] = _flag(out, "month", holiday_months)
    return out
