"""
forecast-prep — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Apply command-line overrides (re-validated).
  4. Execute action.
  5. Report result to stdout.

Install and run::

    pip install -e .
    forecast-prep --help
    forecast-prep validate-config
    forecast-prep list-features --group lag
    forecast-prep build-features --input data/raw/pjme_hourly.csv --target load
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer

app = typer.Typer(
    name="forecast-prep",
    help="Time-series feature preparation for forecasting experiments.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from forecast_prep.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from forecast_prep.utils.logging import configure_logging
    configure_logging(config.logging)


def _parse_lags(lags: str) -> list[int]:
    try:
        return [int(part) for part in lags.split(",") if part.strip()]
    except ValueError:
        typer.echo(f"[ERROR] --lags must be comma-separated integers, got '{lags}'.", err=True)
        raise typer.Exit(code=1)


def _with_feature_overrides(config, overrides: dict[str, Any]):
    """Return a new AppConfig with feature overrides applied and re-validated."""
    from pydantic import ValidationError

    from forecast_prep.config import AppConfig, FeatureConfig

    if not overrides:
        return config
    try:
        features = FeatureConfig(**{**config.features.model_dump(), **overrides})
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid feature options: {exc}", err=True)
        raise typer.Exit(code=1)
    return AppConfig(
        data=config.data,
        features=features,
        logging=config.logging,
        debug=config.debug,
    )


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)
    feat = config.features

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Input path:       {config.data.input_path}")
    typer.echo(f"  Target column:    {feat.target_col}")
    typer.echo(f"  Timestamp:        {feat.timestamp_col} ({feat.timestamp_format or 'ISO-8601'}, {feat.timezone})")
    typer.echo(f"  Lag offsets:      {', '.join(str(k) for k in feat.lag_offsets)}")
    typer.echo(f"  Rolling window:   {feat.rolling_window}")
    typer.echo(f"  Log level:        {config.logging.level}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("list-features")
def list_features(
    group: Optional[str] = typer.Option(
        None,
        "--group",
        "-g",
        help="Only list one group (key, measurement, calendar, flag, lag, rolling).",
    ),
    sub_daily: Optional[bool] = typer.Option(
        None,
        "--sub-daily/--daily",
        help=(
            "Force the hour field on or off.  Defaults to config include_hour; when that "
            "is unset the pipeline infers it from timestamp spacing and hour is listed "
            "as conditional."
        ),
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Print the Feature Table columns produced by the current configuration."""
    from forecast_prep.features.registry import build_feature_registry

    config = _load_config_or_exit(config_path)
    if sub_daily is not None:
        include_hour, hour_inferred = sub_daily, False
    elif config.features.include_hour is not None:
        include_hour, hour_inferred = config.features.include_hour, False
    else:
        include_hour, hour_inferred = True, True

    specs = [
        s for s in build_feature_registry(config.features, include_hour)
        if group is None or s.group == group
    ]
    if not specs:
        typer.echo(f"[ERROR] No features in group '{group}'.", err=True)
        raise typer.Exit(code=1)

    for spec in specs:
        description = spec.description
        if spec.name == "hour" and hour_inferred:
            description += "  [conditional: sub-daily data only, inferred at build time]"
        typer.echo(f"  {spec.name:<20} {spec.group:<12} {spec.pa_type:<10} {description}")
    typer.echo("")
    typer.echo(f"{len(specs)} column(s).")


@app.command("build-features")
def build_features(
    input_path: Optional[str] = typer.Option(
        None,
        "--input",
        "-i",
        help="Observation CSV.  Defaults to config data.input_path.",
    ),
    output_dir: Optional[str] = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Output root.  Defaults to config data.processed_dir.",
    ),
    target: Optional[str] = typer.Option(
        None,
        "--target",
        help="Target measurement column (overrides config).",
    ),
    window: Optional[int] = typer.Option(
        None,
        "--window",
        help="Rolling window size (overrides config).",
    ),
    lags: Optional[str] = typer.Option(
        None,
        "--lags",
        help="Comma-separated lag offsets, e.g. '1,2,3,24' (overrides config).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Build the Feature Table for one CSV and write Parquet + manifest."""
    from forecast_prep.features.dataset_builder import make_output_paths
    from forecast_prep.pipeline.feature_build import FeatureBuildStage

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    overrides: dict[str, Any] = {}
    if target is not None:
        overrides["target_col"] = target
    if window is not None:
        overrides["rolling_window"] = window
    if lags is not None:
        overrides["lag_offsets"] = _parse_lags(lags)
    config = _with_feature_overrides(config, overrides)

    source = Path(input_path or config.data.input_path)
    processed_dir = output_dir or config.data.processed_dir
    if not source.exists():
        typer.echo(f"[ERROR] Input file not found: {source}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Building features from: {source}")
    try:
        run = FeatureBuildStage(config=config).run(
            input_path=source, processed_dir=processed_dir,
        )
    except ValueError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    paths = make_output_paths(processed_dir, source, config.features.target_col)
    with open(paths["manifest"], encoding="utf-8") as f:
        manifest = json.load(f)

    typer.echo(f"  Rows written:          {run.rows_processed}")
    typer.echo(f"  Dropped (timestamp):   {manifest['dropped']['unparseable_timestamp']}")
    typer.echo(f"  Dropped (incomplete):  {manifest['dropped']['incomplete_features']}")
    typer.echo(f"  Features:              {paths['features']}")
    typer.echo(f"  Manifest:              {paths['manifest']}")
    if not manifest["quality"]["is_clean"]:
        typer.echo("[WARN] Feature Table failed quality checks; see manifest.")
    typer.echo(f"[OK] Run {run.run_slug} complete.")


if __name__ == "__main__":
    app()
