"""forecast-prep — calendar, lag and rolling-window features for time-series forecasting."""

__version__ = "0.1.0"
