"""Monitoring module - block device counter sampling.

Provides:
- CounterSource: reader for /sys/block/<device>/stat
- compute_snapshot: rate calculation from two readings
- SnapshotStore: latest snapshot per device, safe for concurrent readers
- DeviceSampler / SamplerPool: periodic per-device sampling threads
"""

from __future__ import annotations

from blkstat.monitoring.counters import (
    FIELD_NAMES,
    CounterParseError,
    CounterSource,
    CounterSourceError,
    RawCounterReading,
    parse_counters,
    stat_path,
)
from blkstat.monitoring.pool import SamplerPool
from blkstat.monitoring.rates import compute_snapshot, counter_deltas
from blkstat.monitoring.sampler import (
    DeviceSampler,
    PeriodicTicker,
    SamplerState,
    TickResult,
    next_deadline,
)
from blkstat.monitoring.store import SnapshotStore

__all__ = [
    "FIELD_NAMES",
    "CounterParseError",
    "CounterSource",
    "CounterSourceError",
    "DeviceSampler",
    "PeriodicTicker",
    "RawCounterReading",
    "SamplerPool",
    "SamplerState",
    "SnapshotStore",
    "TickResult",
    "compute_snapshot",
    "counter_deltas",
    "next_deadline",
    "parse_counters",
    "stat_path",
]
