"""
Lag features: the target's value a fixed number of rows earlier.

Lags are positional (``Series.shift``), not calendar arithmetic.  The table
must already be in ascending timestamp order with uniform spacing, which
``calendar.parse_timestamps()`` establishes.  The first ``k`` rows of
``lag_k`` are NaN — never zero — and no rows are dropped here; the explicit
filtering stage removes them later.
"""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd


def lag_column(k: int) -> str:
    return f"lag_{k}"


def add_lag_features(
    df: pd.DataFrame,
    target_col: str,
    offsets: Sequence[int],
) -> pd.DataFrame:
    """Return a copy of ``df`` with one ``lag_k`` column per offset, in order."""
    out = df.copy()
    target = out[target_col].astype("float64")
    for k in offsets:
        out[lag_column(k)] = target.shift(k)
    return out
