"""
Rolling-window mean and residual of the target.

For window size ``w``:

    rolling_avg_w(i)  = mean(target[i-w+1 .. i])      (current row included)
    rolling_diff_w(i) = target(i) - rolling_avg_w(i)

Policy
------
- Complete windows only: ``min_periods == w``, so the first ``w-1`` rows are
  NaN.  This is NOT an expanding mean.
- A NaN anywhere in the window makes the result NaN.  pandas skips NaN when
  averaging, but with ``min_periods == w`` a window holding fewer than ``w``
  observed values never qualifies, so missingness propagates.
- Strictly trailing: nothing after row ``i`` is read.
"""

from __future__ import annotations

import pandas as pd


def rolling_avg_column(window: int) -> str:
    return f"rolling_avg_{window}"


def rolling_diff_column(window: int) -> str:
    return f"rolling_diff_{window}"


def add_rolling_features(
    df: pd.DataFrame,
    target_col: str,
    window: int,
) -> pd.DataFrame:
    """Return a copy of ``df`` with ``rolling_avg_w`` and ``rolling_diff_w``.

    Raises:
        ValueError: If ``window`` is not a positive integer.
    """
    if window <= 0:
        raise ValueError(f"window must be a positive integer, got {window}.")

    out = df.copy()
    target = out[target_col].astype("float64")
    avg = target.rolling(window=window, min_periods=window).mean()
    out[rolling_avg_column(window)] = avg
    out[rolling_diff_column(window)] = target - avg
    return out
