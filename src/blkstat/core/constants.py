"""Shared constants for blkstat.

Centralized constants to avoid duplication between the sampler, the
configuration schema and the CLI.
"""

from __future__ import annotations

from pathlib import Path

# The kernel reports transferred volume in 512-byte sectors regardless of the
# device's physical block size.
SECTOR_SIZE = 512

# Number of leading fields of /sys/block/<dev>/stat that are read.
COUNTER_FIELD_COUNT = 11

DEFAULT_DEVICE = "sda"
DEFAULT_SAMPLE_INTERVAL_SECONDS = 1.0
DEFAULT_LISTEN_ADDRESS = ":8080"
DEFAULT_SYS_BLOCK_ROOT = Path("/sys/block")

# File name of the per-device counter source below <root>/<device>/
STAT_FILE_NAME = "stat"
