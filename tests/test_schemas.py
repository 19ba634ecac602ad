"""Tests for blkstat schemas and configuration loading."""

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest
from pydantic import ValidationError

from blkstat.core.config import build_config, load_config, save_config
from blkstat.core.schemas import FailurePolicy, ServerConfig, Snapshot


class TestServerConfig:
    """Tests for ServerConfig defaults and normalization."""

    def test_defaults(self) -> None:
        config = ServerConfig()
        assert config.sample_interval_seconds == 1.0
        assert config.listen_address == ":8080"
        assert config.devices == ["sda"]
        assert config.sys_block_root == Path("/sys/block")
        assert config.failure_policy is FailurePolicy.ISOLATE

    @pytest.mark.parametrize(
        "interval", [0, -5, -0.1, None, float("nan"), float("inf"), float("-inf"), "nan", "inf"]
    )
    def test_non_positive_or_non_finite_interval_falls_back(self, interval) -> None:
        assert ServerConfig(sample_interval_seconds=interval).sample_interval_seconds == 1.0

    def test_custom_interval(self) -> None:
        assert ServerConfig(sample_interval_seconds=0.25).sample_interval_seconds == 0.25

    def test_invalid_interval_type(self) -> None:
        with pytest.raises(ValidationError):
            ServerConfig(sample_interval_seconds="soon")

    def test_bare_port_gets_separator(self) -> None:
        config = ServerConfig(listen_address="9090")
        assert config.listen_address == ":9090"
        assert config.port == 9090
        assert config.host == "0.0.0.0"

    def test_integer_port(self) -> None:
        assert ServerConfig(listen_address=9090).listen_address == ":9090"

    def test_host_and_port(self) -> None:
        config = ServerConfig(listen_address=" 127.0.0.1:9100 ")
        assert config.listen_address == "127.0.0.1:9100"
        assert config.host == "127.0.0.1"
        assert config.port == 9100

    def test_empty_listen_address_falls_back(self) -> None:
        assert ServerConfig(listen_address="  ").listen_address == ":8080"

    @pytest.mark.parametrize("address", [":http", "localhost:", ":70000", "abc"])
    def test_invalid_port(self, address) -> None:
        with pytest.raises(ValidationError):
            ServerConfig(listen_address=address)

    def test_empty_device_list_falls_back(self) -> None:
        assert ServerConfig(devices="").devices == ["sda"]
        assert ServerConfig(devices="  ").devices == ["sda"]
        assert ServerConfig(devices=[]).devices == ["sda"]

    def test_comma_separated_devices(self) -> None:
        config = ServerConfig(devices="sda, nvme0n1,,sdb,sda")
        assert config.devices == ["sda", "nvme0n1", "sdb"]

    def test_device_name_cannot_escape_root(self) -> None:
        with pytest.raises(ValidationError):
            ServerConfig(devices="../etc")

    def test_failure_policy_from_string(self) -> None:
        assert ServerConfig(failure_policy="escalate").failure_policy is FailurePolicy.ESCALATE
        with pytest.raises(ValidationError):
            ServerConfig(failure_policy="panic")


class TestSnapshot:
    """Tests for the Snapshot schema."""

    def test_json_dict(self) -> None:
        snap = Snapshot(
            timestamp=datetime(2026, 10, 19, 12, 0, 1, tzinfo=UTC),
            reads_per_second=10,
            bytes_read_per_second=102400,
            in_flight=5,
        )
        data = snap.to_json_dict()
        assert data["timestamp"].startswith("2026-10-19T12:00:01")
        assert data["reads_per_second"] == 10.0
        assert data["bytes_read_per_second"] == 102400.0
        assert data["in_flight"] == 5
        assert set(data) == {
            "timestamp",
            "reads_per_second",
            "bytes_read_per_second",
            "read_wait_milliseconds",
            "writes_per_second",
            "bytes_written_per_second",
            "write_wait_milliseconds",
            "in_flight",
            "queue_wait_milliseconds",
        }


class TestLoadConfig:
    """Tests for load_config / build_config / save_config."""

    def test_load_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "blkstat.yaml"
        path.write_text(
            "sample_interval_seconds: 5\n"
            "listen_address: '9100'\n"
            "devices: [sda, sdb]\n"
            "failure_policy: escalate\n"
        )
        config = load_config(path)
        assert config.sample_interval_seconds == 5
        assert config.listen_address == ":9100"
        assert config.devices == ["sda", "sdb"]
        assert config.failure_policy is FailurePolicy.ESCALATE

    def test_yaml_nan_interval_gives_default(self, tmp_path: Path) -> None:
        path = tmp_path / "blkstat.yaml"
        path.write_text("sample_interval_seconds: .nan\n")
        assert load_config(path).sample_interval_seconds == 1.0

    def test_load_json(self, tmp_path: Path) -> None:
        path = tmp_path / "blkstat.json"
        path.write_text(json.dumps({"devices": "nvme0n1"}))
        assert load_config(path).devices == ["nvme0n1"]

    def test_empty_yaml_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == ServerConfig()

    def test_overrides_win(self, tmp_path: Path) -> None:
        path = tmp_path / "blkstat.yaml"
        path.write_text("devices: [sda]\nsample_interval_seconds: 5\n")
        config = load_config(path, {"devices": "sdc", "sample_interval_seconds": None})
        assert config.devices == ["sdc"]
        assert config.sample_interval_seconds == 5

    def test_build_config_without_file(self) -> None:
        config = build_config(None, {"listen_address": "9090", "devices": None})
        assert config.listen_address == ":9090"
        assert config.devices == ["sda"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_unsupported_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "blkstat.ini"
        path.write_text("[x]\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- sda\n")
        with pytest.raises(ValueError):
            load_config(path)

    @pytest.mark.parametrize("name", ["saved.yaml", "saved.json"])
    def test_save_and_reload(self, tmp_path: Path, name: str) -> None:
        config = ServerConfig(devices="sda,sdb", listen_address="9100")
        save_config(config, tmp_path / name)
        assert load_config(tmp_path / name) == config
