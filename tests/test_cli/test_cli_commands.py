"""Tests for the typer CLI."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from forecast_prep.cli import app

runner = CliRunner()


@pytest.fixture
def cli_config(tmp_path) -> Path:
    path = tmp_path / "cfg.toml"
    path.write_text(
        f"""
[data]
input_path    = "{(tmp_path / 'obs.csv').as_posix()}"
processed_dir = "{(tmp_path / 'processed').as_posix()}"
runs_dir      = "{(tmp_path / 'runs').as_posix()}"

[features]
lag_offsets    = [1, 2]
rolling_window = 3

[logging]
log_file = ""
""",
        encoding="utf-8",
    )
    return path


class TestValidateConfig:
    def test_valid(self, cli_config):
        result = runner.invoke(app, ["validate-config", "--config", str(cli_config)])
        assert result.exit_code == 0
        assert "[OK] Config valid." in result.output
        assert "Rolling window:   3" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["validate-config", "--config", str(tmp_path / "x.toml")])
        assert result.exit_code == 1

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[features]\nrolling_window = 0\n", encoding="utf-8")
        result = runner.invoke(app, ["validate-config", "--config", str(path)])
        assert result.exit_code == 1


class TestListFeatures:
    def test_lag_group(self, cli_config):
        result = runner.invoke(app, ["list-features", "--config", str(cli_config), "-g", "lag"])
        assert result.exit_code == 0
        assert "lag_1" in result.output
        assert "lag_2" in result.output
        assert "2 column(s)." in result.output

    def test_daily_has_no_hour(self, cli_config):
        result = runner.invoke(app, ["list-features", "--config", str(cli_config), "--daily"])
        assert result.exit_code == 0
        assert " hour " not in result.output

    def test_inferred_hour_marked_conditional(self, cli_config):
        result = runner.invoke(app, ["list-features", "--config", str(cli_config), "-g", "calendar"])
        assert result.exit_code == 0
        hour_line = next(line for line in result.output.splitlines() if line.strip().startswith("hour "))
        assert "conditional" in hour_line

    def test_forced_hour_not_marked_conditional(self, cli_config):
        result = runner.invoke(
            app, ["list-features", "--config", str(cli_config), "-g", "calendar", "--sub-daily"],
        )
        assert result.exit_code == 0
        assert "conditional" not in result.output
        assert "hour" in result.output

    def test_unknown_group(self, cli_config):
        result = runner.invoke(app, ["list-features", "--config", str(cli_config), "-g", "nope"])
        assert result.exit_code == 1


class TestBuildFeatures:
    def test_builds_with_overrides(self, cli_config, tmp_path, make_frame):
        make_frame([float(i) for i in range(8)]).to_csv(tmp_path / "obs.csv", index=False)

        result = runner.invoke(
            app,
            ["build-features", "--config", str(cli_config), "--lags", "1", "--window", "2"],
        )

        assert result.exit_code == 0, result.output
        assert "Rows written:          7" in result.output
        assert "Dropped (incomplete):  1" in result.output
        assert list((tmp_path / "processed" / "features").glob("*.parquet"))

    def test_zero_window_override_rejected(self, cli_config, tmp_path, make_frame):
        make_frame([1.0, 2.0]).to_csv(tmp_path / "obs.csv", index=False)
        result = runner.invoke(app, ["build-features", "--config", str(cli_config), "--window", "0"])
        assert result.exit_code == 1
        assert not (tmp_path / "processed").exists()

    def test_missing_input(self, cli_config):
        result = runner.invoke(app, ["build-features", "--config", str(cli_config)])
        assert result.exit_code == 1

    def test_unknown_target(self, cli_config, tmp_path, make_frame):
        make_frame([1.0, 2.0, 3.0, 4.0]).to_csv(tmp_path / "obs.csv", index=False)
        result = runner.invoke(
            app, ["build-features", "--config", str(cli_config), "--target", "sales"],
        )
        assert result.exit_code == 1

    def test_bad_lags(self, cli_config, tmp_path, make_frame):
        make_frame([1.0, 2.0]).to_csv(tmp_path / "obs.csv", index=False)
        result = runner.invoke(app, ["build-features", "--config", str(cli_config), "--lags", "a,b"])
        assert result.exit_code == 1
