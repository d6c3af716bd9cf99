"""Tests for the PipelineStage base class and FeatureBuildStage."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from forecast_prep.config import AppConfig, DataConfig, FeatureConfig
from forecast_prep.models.meta import RunMetadata
from forecast_prep.pipeline.base import PipelineStage, read_run_record, write_run_record
from forecast_prep.pipeline.feature_build import FeatureBuildStage


@pytest.fixture
def stage_config(tmp_path) -> AppConfig:
    return AppConfig(
        data=DataConfig(
            input_path=str(tmp_path / "obs.csv"),
            processed_dir=str(tmp_path / "processed"),
            runs_dir=str(tmp_path / "runs"),
        ),
        features=FeatureConfig(lag_offsets=[1], rolling_window=2),
    )


class TestPipelineStageABC:
    def test_cannot_instantiate_base_directly(self):
        with pytest.raises(TypeError):
            PipelineStage(config=AppConfig())  # type: ignore[abstract]

    def test_subclass_without_execute_raises(self):
        class IncompleteStage(PipelineStage):
            stage_name = "feature_build"

        with pytest.raises(TypeError):
            IncompleteStage(config=AppConfig())  # type: ignore[abstract]

    def test_failure_recorded_and_reraised(self, stage_config, tmp_path):
        class Exploding(PipelineStage):
            stage_name = "feature_build"

            def _execute(self, run: RunMetadata, **kwargs) -> int:
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            Exploding(config=stage_config).run()

        records = list((tmp_path / "runs").glob("*.json"))
        assert len(records) == 1
        record = read_run_record(records[0])
        assert record.status == "failed"
        assert record.error_message == "boom"


class TestRunMetadata:
    def test_unknown_stage_rejected(self):
        from datetime import datetime, timezone

        with pytest.raises(ValidationError):
            RunMetadata(
                run_slug="x",
                pipeline_stage="train",
                config_snapshot={},
                started_at=datetime.now(tz=timezone.utc),
            )


class TestFeatureBuildStage:
    def test_stage_name(self):
        assert FeatureBuildStage.stage_name == "feature_build"

    def test_successful_run(self, stage_config, tmp_path, make_frame):
        make_frame([1.0, 2.0, 3.0, 4.0, 5.0]).to_csv(tmp_path / "obs.csv", index=False)

        run = FeatureBuildStage(config=stage_config).run()

        assert run.status == "success"
        assert run.rows_processed == 4
        assert run.finished_at is not None
        assert run.config_snapshot["features"]["rolling_window"] == 2
        assert (tmp_path / "runs" / f"{run.run_slug}.json").exists()
        assert list((tmp_path / "processed" / "features").glob("*.parquet"))

    def test_missing_target_fails_run(self, stage_config, tmp_path, make_frame):
        make_frame([1.0, 2.0, 3.0], target_col="sales").to_csv(tmp_path / "obs.csv", index=False)

        with pytest.raises(ValueError, match="load"):
            FeatureBuildStage(config=stage_config).run()

        record = read_run_record(next((tmp_path / "runs").glob("*.json")))
        assert record.status == "failed"


class TestRunRecordFiles:
    def test_write_then_read(self, tmp_path):
        from datetime import datetime, timezone

        run = RunMetadata(
            run_slug="slug-1",
            pipeline_stage="feature_build",
            config_snapshot={"features": {"rolling_window": 3}},
            started_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        path = write_run_record(run, tmp_path / "runs")

        assert path.name == "slug-1.json"
        loaded = read_run_record(path)
        assert loaded.run_slug == "slug-1"
        assert loaded.status == "started"
        assert loaded.started_at == run.started_at

    def test_unwritable_runs_dir_does_not_mask_result(self, stage_config, tmp_path, make_frame):
        make_frame([1.0, 2.0, 3.0]).to_csv(tmp_path / "obs.csv", index=False)
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")

        run = FeatureBuildStage(config=stage_config, runs_dir=str(blocker / "runs")).run()

        assert run.status == "success"
