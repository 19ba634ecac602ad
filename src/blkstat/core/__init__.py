"""Core module - configuration and schemas."""

from __future__ import annotations

from blkstat.core.config import build_config, load_config, save_config
from blkstat.core.constants import (
    COUNTER_FIELD_COUNT,
    DEFAULT_DEVICE,
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_SAMPLE_INTERVAL_SECONDS,
    DEFAULT_SYS_BLOCK_ROOT,
    SECTOR_SIZE,
)
from blkstat.core.schemas import FailurePolicy, ServerConfig, Snapshot

__all__ = [
    "COUNTER_FIELD_COUNT",
    "DEFAULT_DEVICE",
    "DEFAULT_LISTEN_ADDRESS",
    "DEFAULT_SAMPLE_INTERVAL_SECONDS",
    "DEFAULT_SYS_BLOCK_ROOT",
    "FailurePolicy",
    "SECTOR_SIZE",
    "ServerConfig",
    "Snapshot",
    "build_config",
    "load_config",
    "save_config",
]
