"""Conversion of two consecutive counter readings into per-second rates.

Rates are always normalized by the *configured* sample interval rather than
the measured time between reads, so a delayed tick shows up as a distorted
rate for that one interval only. The next tick resets the baseline.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime

from blkstat.core.constants import SECTOR_SIZE
from blkstat.core.schemas import Snapshot
from blkstat.monitoring.counters import FIELD_NAMES, RawCounterReading


def counter_deltas(previous: RawCounterReading, current: RawCounterReading) -> dict[str, int]:
    """Per-field difference ``current - previous``.

    ``in_flight`` is included for completeness even though it is a gauge.
    """
    return {
        name: cur - prev
        for name, prev, cur in zip(FIELD_NAMES, previous.as_tuple(), current.as_tuple())
    }


def compute_snapshot(
    previous: RawCounterReading,
    current: RawCounterReading,
    interval_seconds: float,
    sector_size: int = SECTOR_SIZE,
    timestamp: datetime | None = None,
) -> Snapshot:
    """Compute a rate snapshot from two consecutive readings.

    Args:
        previous: Baseline reading from the previous tick
        current: Reading taken on this tick
        interval_seconds: Configured sample interval (the rate denominator)
        sector_size: Bytes per kernel sector
        timestamp: Snapshot time; defaults to now (UTC)

    Returns:
        Snapshot with per-second rates

    Raises:
        ValueError: If interval_seconds is not positive and finite
    """
    if not math.isfinite(interval_seconds) or interval_seconds <= 0:
        raise ValueError(f"Sample interval must be positive and finite, got {interval_seconds}")

    s = float(interval_seconds)
    return Snapshot(
        timestamp=timestamp if timestamp is not None else datetime.now(UTC),
        reads_per_second=(current.read_ios - previous.read_ios) / s,
        bytes_read_per_second=(current.read_sectors - previous.read_sectors) * sector_size / s,
        read_wait_milliseconds=(current.read_ticks - previous.read_ticks) / s,
        writes_per_second=(current.write_ios - previous.write_ios) / s,
        bytes_written_per_second=(current.write_sectors - previous.write_sectors)
        * sector_size
        / s,
        write_wait_milliseconds=(current.write_ticks - previous.write_ticks) / s,
        in_flight=current.in_flight,
        queue_wait_milliseconds=(current.time_in_queue - previous.time_in_queue) / s,
    )
