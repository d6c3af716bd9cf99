"""
FeatureBuildStage — turn one observation CSV into a Feature Parquet.

Outputs (under ``config.data.processed_dir/features/``):
  - ``features_<input>_<target>.parquet``
  - ``manifests/manifest_<input>_<target>.json``

Features engineered
-------------------
- **Calendar** — year, month, day-of-week, hour (sub-daily only),
  day-of-year, ISO week, quarter, semester.
- **Lag** — target value k rows earlier for each configured offset.
- **Rolling** — trailing complete-window mean and residual.
- **Flags** — weekend and/or holiday-month indicators.
"""

from __future__ import annotations

import logging
from pathlib import Path

from forecast_prep.models.meta import RunMetadata
from forecast_prep.pipeline.base import PipelineStage

log = logging.getLogger(__name__)


class FeatureBuildStage(PipelineStage):
    """Build the Feature Table for one input file and persist it."""

    stage_name = "feature_build"

    def _execute(
        self,
        run: RunMetadata,
        input_path: str | Path | None = None,
        processed_dir: str | None = None,
        **kwargs,
    ) -> int:
        """Build and write the Feature Parquet + manifest.

        Args:
            run:           In-progress ``RunMetadata``.
            input_path:    Observation CSV.  Defaults to ``config.data.input_path``.
            processed_dir: Output root.  Defaults to ``config.data.processed_dir``.

        Returns:
            Feature rows written.
        """
        from forecast_prep.features.dataset_builder import build_feature_dataset

        source = Path(input_path) if input_path else Path(self.config.data.input_path)
        log.info(
            "FeatureBuildStage: input=%s  target=%s  lags=%s  window=%d",
            source,
            self.config.features.target_col,
            self.config.features.lag_offsets,
            self.config.features.rolling_window,
        )
        return build_feature_dataset(
            config=self.config,
            run=run,
            input_path=source,
            processed_dir=processed_dir,
        )
