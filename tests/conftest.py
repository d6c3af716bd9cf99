"""
Shared pytest fixtures for the forecast-prep test suite.

Provides raw observation tables shaped like the CSVs the loader returns:
the timestamp column holds strings, measurements are numeric.
"""

from __future__ import annotations

import logging

import pandas as pd
import pytest

from forecast_prep.config import FeatureConfig


def make_hourly_frame(
    values: list[float],
    start: str = "2024-01-05 00:00:00",
    freq: str = "h",
    timestamp_col: str = "timestamp",
    target_col: str = "load",
) -> pd.DataFrame:
    """Build a raw hourly table with string timestamps ("%Y-%m-%d %H:%M:%S")."""
    stamps = pd.date_range(start, periods=len(values), freq=freq)
    return pd.DataFrame({
        timestamp_col: stamps.strftime("%Y-%m-%d %H:%M:%S"),
        target_col: values,
    })


@pytest.fixture
def scenario_a_frame() -> pd.DataFrame:
    """Six hourly rows: 10, 12, 11, 13, 15, 14."""
    return make_hourly_frame([10.0, 12.0, 11.0, 13.0, 15.0, 14.0])


@pytest.fixture
def scenario_a_config() -> FeatureConfig:
    """Lags {1, 2}, window 3, hourly data."""
    return FeatureConfig(lag_offsets=[1, 2], rolling_window=3)


@pytest.fixture
def week_of_days_frame() -> pd.DataFrame:
    """Fourteen daily rows starting Sunday 2024-01-07 (two full weeks)."""
    return make_hourly_frame(
        [float(i) for i in range(14)], start="2024-01-07 00:00:00", freq="D",
    )


@pytest.fixture
def make_frame():
    """Factory fixture exposing ``make_hourly_frame`` to test modules."""
    return make_hourly_frame


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Undo ``configure_logging()`` calls made by CLI and logging tests."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
