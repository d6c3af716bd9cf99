"""Feature engineering package for forecast-prep.

Modules
-------
calendar        — timestamp parsing + calendar decomposition (fixed label vocabularies)
lags            — positional lag features
rolling         — complete-window trailing mean and residual
flags           — weekend / holiday-month indicators
filtering       — explicit removal of rows with undefined features
registry        — FeatureSpec + per-config column registry (schema source of truth)
quality         — DataQualityReport for the finished Feature Table
pipeline        — FeaturePipeline orchestrator
dataset_builder — Parquet + JSON manifest output
"""
