"""
Data quality checks for the finished Feature Table.

Purpose
-------
After filtering, ``build_quality_report()`` inspects the table that is about
to be handed to modelling code and produces a ``DataQualityReport``:

- Row count and timestamp range.
- Duplicate timestamps and whether the timestamp column is strictly ascending.
- Spacing irregularities: consecutive gaps that differ from the modal gap.
  Lags and rolling windows are positional, so an irregular series makes
  ``lag_k`` mean "k rows ago" rather than "k periods ago".
- Missingness per registry column (should be zero after filtering).
- How many records the parse and filter stages removed.

``is_clean`` is False for hard integrity problems only: duplicate or
non-ascending timestamps, or missing values left in the output.  Spacing
irregularities are reported but do not mark the table unclean.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd


@dataclass
class DataQualityReport:
    """Summary of quality checks on the finished Feature Table.

    Attributes:
        total_rows:              Rows in the output table.
        range_start:             Earliest timestamp, or None if empty.
        range_end:               Latest timestamp, or None if empty.
        duplicate_timestamp_count: Rows whose timestamp repeats an earlier row.
        is_strictly_ascending:   True if every timestamp exceeds its predecessor.
        irregular_spacing_count: Gaps that differ from the modal gap.
        missingness:             Column → fraction of missing values [0.0, 1.0].
        dropped_unparseable:     Records removed by timestamp parsing.
        dropped_incomplete:      Rows removed by the incomplete-row filter.
        is_clean:                See module docstring.
    """

    total_rows: int
    range_start: pd.Timestamp | None
    range_end: pd.Timestamp | None
    duplicate_timestamp_count: int
    is_strictly_ascending: bool
    irregular_spacing_count: int
    missingness: dict[str, float]
    dropped_unparseable: int
    dropped_incomplete: int
    is_clean: bool

    def summary(self) -> dict:
        """JSON-friendly subset used in the dataset manifest."""
        return {
            "total_rows":                self.total_rows,
            "range_start":               self.range_start.isoformat() if self.range_start is not None else None,
            "range_end":                 self.range_end.isoformat() if self.range_end is not None else None,
            "duplicate_timestamp_count": self.duplicate_timestamp_count,
            "is_strictly_ascending":     self.is_strictly_ascending,
            "irregular_spacing_count":   self.irregular_spacing_count,
            "dropped_unparseable":       self.dropped_unparseable,
            "dropped_incomplete":        self.dropped_incomplete,
            "is_clean":                  self.is_clean,
        }


def build_quality_report(
    table: pd.DataFrame,
    timestamp_col: str,
    columns: list[str],
    dropped_unparseable: int = 0,
    dropped_incomplete: int = 0,
) -> DataQualityReport:
    """Build a quality report for a finished Feature Table.

    Args:
        table:               The output table.
        timestamp_col:       Name of the parsed timestamp column.
        columns:             Registry column names to measure missingness on.
        dropped_unparseable: Count reported by ``calendar.parse_timestamps()``.
        dropped_incomplete:  Count reported by ``filtering.drop_incomplete_rows()``.

    Returns:
        A ``DataQualityReport`` instance.
    """
    n = len(table)
    if n == 0:
        return DataQualityReport(
            total_rows=0,
            range_start=None,
            range_end=None,
            duplicate_timestamp_count=0,
            is_strictly_ascending=True,
            irregular_spacing_count=0,
            missingness={col: 0.0 for col in columns},
            dropped_unparseable=dropped_unparseable,
            dropped_incomplete=dropped_incomplete,
            is_clean=True,
        )

    ts = table[timestamp_col]

    # ── Ordering and uniqueness ────────────────────────────────────────────────
    duplicate_count = int(ts.duplicated().sum())
    gaps = ts.diff().dropna()
    strictly_ascending = bool((gaps > pd.Timedelta(0)).all())

    # ── Spacing regularity ─────────────────────────────────────────────────────
    irregular = 0
    if not gaps.empty:
        modal_gap = gaps.mode().iloc[0]
        irregular = int((gaps != modal_gap).sum())

    # ── Missingness ────────────────────────────────────────────────────────────
    present = [c for c in columns if c in table.columns]
    missingness = {col: float(table[col].isna().mean()) for col in present}
    has_missing = any(frac > 0.0 for frac in missingness.values())

    is_clean = duplicate_count == 0 and strictly_ascending and not has_missing

    return DataQualityReport(
        total_rows=n,
        range_start=ts.min(),
        range_end=ts.max(),
        duplicate_timestamp_count=duplicate_count,
        is_strictly_ascending=strictly_ascending,
        irregular_spacing_count=irregular,
        missingness=missingness,
        dropped_unparseable=dropped_unparseable,
        dropped_incomplete=dropped_incomplete,
        is_clean=is_clean,
    )
