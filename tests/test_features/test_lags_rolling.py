"""
Tests for positional lag features and the complete-window rolling mean.

All tests use small synthetic tables so expected values can be computed by hand.
"""

from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest

from forecast_prep.features.lags import add_lag_features
from forecast_prep.features.rolling import add_rolling_features


def _frame(values: list[float]) -> pd.DataFrame:
    return pd.DataFrame({"load": values})


class TestLagFeatures:
    def test_one_column_per_offset_in_configured_order(self):
        out = add_lag_features(_frame([1.0, 2.0, 3.0]), "load", [2, 1])
        assert list(out.columns) == ["load", "lag_2", "lag_1"]

    def test_lag_equals_value_k_rows_earlier(self):
        values = [10.0, 12.0, 11.0, 13.0, 15.0, 14.0]
        out = add_lag_features(_frame(values), "load", [1, 2, 4])
        for k in (1, 2, 4):
            for i in range(k, len(values)):
                assert out.loc[i, f"lag_{k}"] == values[i - k]

    def test_head_rows_are_missing_not_zero(self):
        out = add_lag_features(_frame([5.0, 6.0, 7.0]), "load", [2])
        assert out["lag_2"].isna().tolist() == [True, True, False]

    def test_never_drops_rows(self):
        out = add_lag_features(_frame([1.0, 2.0]), "load", [6])
        assert len(out) == 2
        assert out["lag_6"].isna().all()

    def test_missing_target_value_propagates_to_later_lag(self):
        out = add_lag_features(_frame([1.0, np.nan, 3.0]), "load", [1])
        assert math.isnan(out.loc[2, "lag_1"])

    def test_positional_not_calendar_based(self):
        """A gap in timestamps does not change which row a lag points at."""
        df = pd.DataFrame({
            "timestamp": pd.to_datetime(["2024-01-01", "2024-01-02", "2024-01-09"]),
            "load": [1.0, 2.0, 3.0],
        })
        out = add_lag_features(df, "load", [1])
        assert out.loc[2, "lag_1"] == 2.0

    def test_input_not_modified(self):
        df = _frame([1.0, 2.0])
        add_lag_features(df, "load", [1])
        assert list(df.columns) == ["load"]


class TestRollingFeatures:
    def test_column_names(self):
        out = add_rolling_features(_frame([1.0, 2.0, 3.0]), "load", 3)
        assert {"rolling_avg_3", "rolling_diff_3"} <= set(out.columns)

    def test_exact_mean_over_trailing_window(self):
        values = [10.0, 12.0, 11.0, 13.0, 15.0, 14.0]
        w = 3
        out = add_rolling_features(_frame(values), "load", w)
        for i in range(w - 1, len(values)):
            expected = sum(values[i - w + 1 : i + 1]) / w
            assert out.loc[i, "rolling_avg_3"] == pytest.approx(expected)

    def test_incomplete_windows_are_missing(self):
        """Complete windows only: no partial/expanding average at the head."""
        out = add_rolling_features(_frame([1.0, 2.0, 3.0, 4.0]), "load", 3)
        assert out["rolling_avg_3"].isna().tolist() == [True, True, False, False]

    def test_diff_is_value_minus_average(self):
        values = [10.0, 12.0, 11.0, 13.0]
        out = add_rolling_features(_frame(values), "load", 3)
        assert out.loc[3, "rolling_avg_3"] == pytest.approx(12.0)
        assert out.loc[3, "rolling_diff_3"] == pytest.approx(1.0)
        assert out["rolling_diff_3"].isna().tolist() == [True, True, False, False]

    def test_missing_value_in_window_makes_result_missing(self):
        values = [1.0, 2.0, np.nan, 4.0, 5.0, 6.0, 7.0]
        out = add_rolling_features(_frame(values), "load", 3)
        # Windows ending at rows 2, 3, 4 contain the NaN.
        assert out["rolling_avg_3"].isna().tolist() == [True, True, True, True, True, False, False]
        assert out.loc[5, "rolling_avg_3"] == pytest.approx(5.0)

    def test_zero_is_a_value_not_missing(self):
        out = add_rolling_features(_frame([0.0, 0.0, 3.0]), "load", 3)
        assert out.loc[2, "rolling_avg_3"] == pytest.approx(1.0)

    def test_window_of_one_equals_value(self):
        out = add_rolling_features(_frame([4.0, 8.0]), "load", 1)
        assert out["rolling_avg_1"].tolist() == [4.0, 8.0]
        assert out["rolling_diff_1"].tolist() == [0.0, 0.0]

    def test_float_output_for_integer_target(self):
        out = add_rolling_features(pd.DataFrame({"load": [1, 2, 4]}), "load", 2)
        assert out["rolling_avg_2"].dtype == np.float64
        assert out.loc[2, "rolling_avg_2"] == pytest.approx(3.0)

    @pytest.mark.parametrize("window", [0, -3])
    def test_non_positive_window_rejected(self, window):
        with pytest.raises(ValueError, match="window"):
            add_rolling_features(_frame([1.0]), "load", window)


class TestNoLookAhead:
    """Changing a future value must never change an earlier row's features."""

    def test_future_change_does_not_affect_past_rows(self):
        base = [10.0, 12.0, 11.0, 13.0, 15.0, 14.0]
        altered = base[:4] + [999.0, -999.0]

        def build(values):
            df = add_lag_features(_frame(values), "load", [1, 2])
            return add_rolling_features(df, "load", 3)

        a, b = build(base), build(altered)
        pd.testing.assert_frame_equal(a.iloc[:4], b.iloc[:4])
