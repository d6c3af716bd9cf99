"""
Dataset assembly: Parquet file + JSON manifest.

Purpose
-------
``build_feature_dataset()`` is the top-level orchestrator called by
``FeatureBuildStage``.  It loads one observation CSV, runs the
``FeaturePipeline`` over it and writes:

    data/processed/features/features_{input_stem}_{target}.parquet
    data/processed/features/manifests/manifest_{input_stem}_{target}.json

Parquet schema
--------------
Derived from ``registry.build_feature_registry()`` for the active config,
so column order and types are fixed per configuration:

    timestamp     timestamp[ns, tz]
    float64       target, measurements, lags, rolling stats
    int64 / int8  year / 0-1 flags
    dictionary    calendar categoricals; the dictionary is always the full
                  fixed vocabulary, so codes are stable across files

Snappy compression.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from forecast_prep.config import AppConfig, FeatureConfig
from forecast_prep.features.pipeline import FeatureBuildResult, FeaturePipeline
from forecast_prep.features.registry import (
    FeatureSpec,
    build_feature_registry,
    feature_groups,
    feature_names,
)
from forecast_prep.ingestion.csv_loader import load_observations
from forecast_prep.models.meta import RunMetadata

log = logging.getLogger(__name__)

# ── PyArrow type map ───────────────────────────────────────────────────────────

_PA_TYPE_MAP: dict[str, pa.DataType] = {
    "float64":    pa.float64(),
    "int64":      pa.int64(),
    "int8":       pa.int8(),
    "dict_utf8":  pa.dictionary(pa.int16(), pa.string()),
    "dict_int16": pa.dictionary(pa.int16(), pa.int16()),
}


def _pa_type(spec: FeatureSpec, tz: str) -> pa.DataType:
    if spec.pa_type == "timestamp":
        return pa.timestamp("ns", tz=tz)
    pa_type = _PA_TYPE_MAP.get(spec.pa_type)
    if pa_type is None:
        raise ValueError(f"Unknown pa_type '{spec.pa_type}' for feature '{spec.name}'.")
    return pa_type


def build_arrow_schema(config: FeatureConfig, include_hour: bool) -> pa.Schema:
    """Build the PyArrow schema from the feature registry, in registry order."""
    return pa.schema([
        pa.field(spec.name, _pa_type(spec, config.timezone), nullable=spec.group == "measurement")
        for spec in build_feature_registry(config, include_hour)
    ])


# ── Parquet assembly ───────────────────────────────────────────────────────────

def _to_arrow_array(values: pd.Series, spec: FeatureSpec, pa_type: pa.DataType) -> pa.Array:
    if spec.categories is not None:
        codes = pd.Categorical(values, categories=list(spec.categories)).codes.astype("int16")
        indices = pa.array(codes, type=pa.int16(), mask=codes < 0)
        dictionary = pa.array(list(spec.categories), type=pa_type.value_type)
        return pa.DictionaryArray.from_arrays(indices, dictionary)
    return pa.array(values, type=pa_type, from_pandas=True)


def table_to_arrow(
    table: pd.DataFrame,
    config: FeatureConfig,
    include_hour: bool,
) -> pa.Table:
    """Convert a Feature Table to a PyArrow Table with the registry schema."""
    schema = build_arrow_schema(config, include_hour)
    specs = {s.name: s for s in build_feature_registry(config, include_hour)}
    arrays = [
        _to_arrow_array(table[field.name], specs[field.name], field.type)
        for field in schema
    ]
    return pa.Table.from_arrays(arrays, schema=schema)


def write_feature_table(
    table: pd.DataFrame,
    path: Path,
    config: FeatureConfig,
    include_hour: bool,
) -> int:
    """Write the Feature Table as Snappy Parquet.  Returns rows written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    arrow_table = table_to_arrow(table, config, include_hour)
    pq.write_table(arrow_table, str(path), compression="snappy")
    log.info("Feature Parquet written: %s (%d rows)", path.name, len(table))
    return len(table)


# ── Output path helpers ────────────────────────────────────────────────────────

def make_output_paths(processed_dir: str, input_path: Path, target_col: str) -> dict[str, Path]:
    """Build deterministic output file paths for one input file.

    Returns a dict with keys: ``features``, ``manifest``.
    """
    base = Path(processed_dir) / "features"
    stem = f"{input_path.stem}_{target_col}".replace("-", "_").replace(" ", "_")
    return {
        "features": base / f"features_{stem}.parquet",
        "manifest": base / "manifests" / f"manifest_{stem}.json",
    }


def _hash_file(path: Path) -> str:
    """Return the SHA-256 hex digest of a file's contents."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


# ── Manifest ───────────────────────────────────────────────────────────────────

def build_manifest(
    run_slug: str,
    input_path: Path,
    features_path: Path,
    result: FeatureBuildResult,
    config: FeatureConfig,
) -> dict[str, Any]:
    """Build the manifest dict for one feature dataset build."""
    groups = feature_groups(config, result.include_hour)
    feature_cols = {
        g: feature_names(config, result.include_hour, group=g) for g in groups
    }

    return {
        "schema_version": "1.0",
        "built_at":     datetime.now(tz=timezone.utc).isoformat(),
        "run_slug":     run_slug,
        "input_path":   str(input_path),
        "include_hour": result.include_hour,
        "files": {
            "features": {
                "path":        str(features_path),
                "sha256":      _hash_file(features_path) if features_path.exists() else None,
                "rows":        len(result.table),
                "compression": "snappy",
            },
        },
        "dropped": {
            "unparseable_timestamp": result.dropped_unparseable,
            "incomplete_features":   result.dropped_incomplete,
        },
        "feature_columns": feature_cols,
        "quality":         result.quality.summary(),
        "config_snapshot": config.model_dump(),
    }


def write_manifest(manifest: dict[str, Any], path: Path) -> None:
    """Write the manifest dict as pretty-printed JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, default=str)
    log.info("Manifest written: %s", path.name)


# ── Main orchestrator ──────────────────────────────────────────────────────────

def build_feature_dataset(
    config: AppConfig,
    run: RunMetadata,
    input_path: Path | None = None,
    processed_dir: str | None = None,
) -> int:
    """Load observations, build the Feature Table, write Parquet + manifest.

    This is the entry point called by ``FeatureBuildStage._execute()``.

    Args:
        config:        Full application config.
        run:           Current RunMetadata (for run_slug in the manifest).
        input_path:    Observation CSV.  Defaults to ``config.data.input_path``.
        processed_dir: Output root.  Defaults to ``config.data.processed_dir``.

    Returns:
        Rows written to the Feature Parquet (for RunMetadata.rows_processed).
    """
    cfg_feat = config.features
    source = Path(input_path or config.data.input_path)
    out_root = processed_dir or config.data.processed_dir

    raw = load_observations(source, cfg_feat.timestamp_col)
    result = FeaturePipeline(cfg_feat).run(raw)

    paths = make_output_paths(out_root, source, cfg_feat.target_col)
    written = write_feature_table(result.table, paths["features"], cfg_feat, result.include_hour)

    manifest = build_manifest(
        run_slug=run.run_slug,
        input_path=source,
        features_path=paths["features"],
        result=result,
        config=cfg_feat,
    )
    write_manifest(manifest, paths["manifest"])

    log.info(
        "%s done | rows=%d  dropped_unparseable=%d  dropped_incomplete=%d  is_clean=%s",
        source.name, written, result.dropped_unparseable,
        result.dropped_incomplete, result.quality.is_clean,
    )
    return written
