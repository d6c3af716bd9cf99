"""
Pipeline stage base class and run-record persistence.

A stage wraps one unit of work (today: building a Feature Table) in an
auditable ``RunMetadata`` record:

    started ──_execute() ok──▶ success   (rows_processed set)
            └─_execute() raised─▶ failed  (error_message set, exception re-raised)

The finished record is written to ``<runs_dir>/<run_slug>.json`` in both
cases.  Subclasses set ``stage_name`` and implement ``_execute()``::

    class FeatureBuildStage(PipelineStage):
        stage_name = "feature_build"

        def _execute(self, run: RunMetadata, **kwargs) -> int:
            ...

    run = FeatureBuildStage(config=app_config).run(input_path="data/raw/obs.csv")
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from uuid import uuid4

from forecast_prep.config import AppConfig
from forecast_prep.models.meta import RunMetadata
from forecast_prep.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def write_run_record(run: RunMetadata, runs_dir: Path) -> Path:
    """Serialise ``run`` to ``<runs_dir>/<run_slug>.json`` and return the path."""
    runs_dir.mkdir(parents=True, exist_ok=True)
    path = runs_dir / f"{run.run_slug}.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(run.model_dump(mode="json"), f, indent=2)
    return path


def read_run_record(path: Path | str) -> RunMetadata:
    """Load a run record written by ``write_run_record()``."""
    with open(path, encoding="utf-8") as f:
        return RunMetadata.model_validate(json.load(f))


class PipelineStage(ABC):
    """Abstract base for pipeline stages.

    Attributes:
        stage_name: One of ``models.meta.VALID_PIPELINE_STAGES``.
        config:     Application config shared by every stage.
        runs_dir:   Where run records go (default ``config.data.runs_dir``).
    """

    stage_name: str

    def __init__(self, config: AppConfig, runs_dir: str | None = None) -> None:
        self.config = config
        self.runs_dir = Path(runs_dir or config.data.runs_dir)

    def run(self, **kwargs) -> RunMetadata:
        """Execute the stage and return its finished run record.

        Keyword arguments are forwarded to ``_execute()``.  Any exception it
        raises is recorded on the run (``status='failed'``) and re-raised.
        """
        run = RunMetadata(
            run_slug=str(uuid4()),
            pipeline_stage=self.stage_name,
            config_snapshot=self.config.model_dump(),
            started_at=utcnow(),
        )
        logger.info("Stage [%s] starting | run_slug=%s", self.stage_name, run.run_slug)

        try:
            rows = self._execute(run=run, **kwargs)
        except Exception as exc:
            self._finish(run, status="failed", error=str(exc))
            raise

        self._finish(run, status="success", rows=rows)
        return run

    @abstractmethod
    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Do the stage's work and return the number of rows written."""

    def _finish(
        self,
        run: RunMetadata,
        status: str,
        rows: int = 0,
        error: str | None = None,
    ) -> None:
        run.status = status
        run.rows_processed = rows
        run.error_message = error
        run.finished_at = utcnow()
        elapsed = (run.finished_at - run.started_at).total_seconds()

        if status == "failed":
            logger.error(
                "Stage [%s] FAILED after %.2fs: %s | run_slug=%s",
                self.stage_name, elapsed, error, run.run_slug,
            )
        else:
            logger.info(
                "Stage [%s] completed in %.2fs | rows=%d | run_slug=%s",
                self.stage_name, elapsed, rows, run.run_slug,
            )

        # A record that cannot be written must not hide the stage's own outcome.
        try:
            write_run_record(run, self.runs_dir)
        except OSError as exc:
            logger.error(
                "Could not write run record for run_slug=%s: %s", run.run_slug, exc,
            )
