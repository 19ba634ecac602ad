"""Tests for the blkstat CLI."""

from pathlib import Path

import yaml
from typer.testing import CliRunner

from blkstat.cli import app
from tests.helpers import PREVIOUS

runner = CliRunner()


class TestSampleCommand:
    """Tests for `blkstat sample`."""

    def test_sample_existing_device(self, sys_block: Path, write_stat) -> None:
        write_stat("sda", PREVIOUS)
        result = runner.invoke(
            app,
            ["sample", "--devices", "sda", "--sys-block-root", str(sys_block), "-i", "0.05"],
        )
        assert result.exit_code == 0, result.output
        assert "sda" in result.output

    def test_sample_missing_device_fails(self, sys_block: Path, write_stat) -> None:
        write_stat("sda", PREVIOUS)
        result = runner.invoke(
            app,
            ["sample", "--devices", "sda,sdq", "--sys-block-root", str(sys_block), "-i", "0.05"],
        )
        assert result.exit_code == 1
        assert "sdq" in result.output

    def test_bad_config_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["sample", "--config", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "Error loading config" in result.output


class TestInitConfigCommand:
    """Tests for `blkstat init-config`."""

    def test_writes_loadable_config(self, tmp_path: Path) -> None:
        output = tmp_path / "conf" / "blkstat.yaml"
        result = runner.invoke(app, ["init-config", "--output", str(output)])
        assert result.exit_code == 0, result.output
        data = yaml.safe_load(output.read_text())
        assert data["devices"] == ["sda"]
        assert data["listen_address"] == ":8080"


class TestServeCommand:
    """Tests for `blkstat serve` startup failures."""

    def test_escalate_missing_device_exits(self, sys_block: Path) -> None:
        result = runner.invoke(
            app,
            [
                "serve",
                "--devices",
                "sdq",
                "--sys-block-root",
                str(sys_block),
                "--failure-policy",
                "escalate",
                "--listen",
                "18080",
            ],
        )
        assert result.exit_code == 1
        assert "sdq" in result.output


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "blkstat" in result.output
