"""
CSV loader for raw observation tables.

The timestamp column is read as plain strings so that every parse decision
(format, timezone, failures) is made by ``calendar.parse_timestamps()``
rather than by ``read_csv``'s date inference.  Measurement columns keep
pandas' numeric inference.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

log = logging.getLogger(__name__)

NA_VALUES: list[str] = ["", "NA", "N/A", "na", "n/a", "NULL", "null", "-", "--"]


def load_observations(path: Path | str, timestamp_col: str) -> pd.DataFrame:
    """Read an observation CSV.

    Args:
        path:          CSV file with a header row.
        timestamp_col: Column kept as raw strings.

    Returns:
        The raw table, in file order.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Observation file not found: {path}")

    df = pd.read_csv(
        path,
        dtype={timestamp_col: "string"},
        keep_default_na=True,
        na_values=NA_VALUES,
    )
    log.info("Loaded %d rows × %d columns from %s", len(df), len(df.columns), path.name)
    return df
