"""Pydantic schemas for blkstat.

This module defines the data contracts shared by the sampler, the HTTP
endpoint and the CLI: the per-device rate snapshot and the server
configuration.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from blkstat.core.constants import (
    DEFAULT_DEVICE,
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_SAMPLE_INTERVAL_SECONDS,
    DEFAULT_SYS_BLOCK_ROOT,
)


class FailurePolicy(str, Enum):
    """What a sampler does when its counter source fails."""

    ISOLATE = "isolate"  # Withdraw the device's snapshot, retry next tick
    ESCALATE = "escalate"  # Stop the whole process


class Snapshot(BaseModel):
    """Latest computed I/O rates for one device.

    Rates are normalized by the configured sample interval. ``in_flight`` is
    the instantaneous gauge from the last reading, not a rate.
    """

    model_config = {"frozen": True}

    timestamp: datetime
    reads_per_second: float = Field(default=0.0, description="Completed reads per second")
    bytes_read_per_second: float = Field(default=0.0, description="Bytes read per second")
    read_wait_milliseconds: float = Field(
        default=0.0, description="Milliseconds spent waiting on reads, per second"
    )
    writes_per_second: float = Field(default=0.0, description="Completed writes per second")
    bytes_written_per_second: float = Field(default=0.0, description="Bytes written per second")
    write_wait_milliseconds: float = Field(
        default=0.0, description="Milliseconds spent waiting on writes, per second"
    )
    in_flight: int = Field(default=0, ge=0, description="I/Os currently in flight")
    queue_wait_milliseconds: float = Field(
        default=0.0, description="Milliseconds of queue wait across all requests, per second"
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict (timestamp as ISO-8601)."""
        return self.model_dump(mode="json")


class ServerConfig(BaseModel):
    """Top-level configuration for the sampler pool and the HTTP endpoint.

    Loaded from YAML/JSON files and/or command-line options. Out-of-range
    values fall back to the defaults instead of failing validation.
    """

    sample_interval_seconds: float = Field(
        default=DEFAULT_SAMPLE_INTERVAL_SECONDS, description="Sampling interval in seconds"
    )
    listen_address: str = Field(
        default=DEFAULT_LISTEN_ADDRESS, description="HTTP listen address ([host]:port)"
    )
    devices: list[str] = Field(
        default_factory=lambda: [DEFAULT_DEVICE], description="Block devices to monitor"
    )
    sys_block_root: Path = Field(
        default=DEFAULT_SYS_BLOCK_ROOT, description="Directory holding <device>/stat files"
    )
    failure_policy: FailurePolicy = Field(default=FailurePolicy.ISOLATE)

    @field_validator("sample_interval_seconds", mode="before")
    @classmethod
    def default_non_positive_interval(cls, v: Any) -> Any:
        """Fall back to the default interval for missing, non-finite or non-positive values."""
        if v is None:
            return DEFAULT_SAMPLE_INTERVAL_SECONDS
        try:
            interval = float(v)
        except (TypeError, ValueError):
            # Let pydantic report the type error
            return v
        if not math.isfinite(interval) or interval <= 0:
            return DEFAULT_SAMPLE_INTERVAL_SECONDS
        return v

    @field_validator("listen_address", mode="before")
    @classmethod
    def normalize_listen_address(cls, v: Any) -> Any:
        """Accept a bare port number by prefixing the port separator."""
        if v is None:
            return DEFAULT_LISTEN_ADDRESS
        if isinstance(v, int):
            v = str(v)
        if not isinstance(v, str):
            return v
        v = v.strip()
        if not v:
            return DEFAULT_LISTEN_ADDRESS
        if ":" not in v:
            return f":{v}"
        return v

    @field_validator("listen_address")
    @classmethod
    def validate_listen_port(cls, v: str) -> str:
        """Ensure the part after the last separator is a valid TCP port."""
        _, _, port = v.rpartition(":")
        if not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"Invalid listen port in {v!r}")
        return v

    @field_validator("devices", mode="before")
    @classmethod
    def parse_device_list(cls, v: Any) -> Any:
        """Accept a comma-separated string; empty input means the default device."""
        if v is None:
            return [DEFAULT_DEVICE]
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, (list, tuple)):
            return v

        devices: list[str] = []
        for item in v:
            name = str(item).strip()
            if name and name not in devices:
                devices.append(name)
        return devices or [DEFAULT_DEVICE]

    @field_validator("devices")
    @classmethod
    def validate_device_names(cls, v: list[str]) -> list[str]:
        """Reject names that would escape the sysfs block directory."""
        for name in v:
            if "/" in name or name in (".", ".."):
                raise ValueError(f"Invalid device name: {name!r}")
        return v

    @property
    def host(self) -> str:
        """Listen host; an empty host means all interfaces."""
        host, _, _ = self.listen_address.rpartition(":")
        return host.strip("[]") or "0.0.0.0"

    @property
    def port(self) -> int:
        """Listen port parsed from the listen address."""
        _, _, port = self.listen_address.rpartition(":")
        return int(port)
