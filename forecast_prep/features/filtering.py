"""
Explicit removal of rows whose derived features are undefined.

Lag and rolling columns are NaN at the head of the series by construction.
``drop_incomplete_rows()`` removes those rows as a named stage and reports
how many were removed, so the count is observable rather than a side effect
of ``DataFrame.dropna()`` buried in a notebook cell.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import pandas as pd

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterResult:
    """Output of ``drop_incomplete_rows()``.

    Attributes:
        table:   Rows with every checked column defined; fresh RangeIndex.
        dropped: Number of rows removed.
    """

    table: pd.DataFrame
    dropped: int


def drop_incomplete_rows(df: pd.DataFrame, columns: Sequence[str]) -> FilterResult:
    """Drop rows with a missing value in any of ``columns``.

    Raises:
        KeyError: If a column in ``columns`` is absent from ``df``.
    """
    missing_cols = [c for c in columns if c not in df.columns]
    if missing_cols:
        raise KeyError(f"Cannot filter on absent columns: {missing_cols}")

    incomplete = df[list(columns)].isna().any(axis=1)
    dropped = int(incomplete.sum())
    table = df.loc[~incomplete].reset_index(drop=True)
    if dropped:
        log.info("Dropped %d row(s) with undefined lag/rolling values.", dropped)
    return FilterResult(table=table, dropped=dropped)
