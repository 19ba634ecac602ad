"""Per-device sampler: periodic read, rate computation and publish.

Each DeviceSampler owns one counter source and its baseline reading and runs
on its own daemon thread. The only state it shares is its cell in the
SnapshotStore.

Lifecycle:
    INITIALIZING -> RUNNING      source opened, baseline read (not published)
    RUNNING -> INITIALIZING      read failed under FailurePolicy.ISOLATE
    any -> FAILED                failure under FailurePolicy.ESCALATE, or an
                                 unexpected error in the sampling thread
    any -> STOPPED               stop()
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from blkstat.core.constants import DEFAULT_SYS_BLOCK_ROOT
from blkstat.core.schemas import FailurePolicy, Snapshot
from blkstat.monitoring.counters import (
    CounterParseError,
    CounterSource,
    CounterSourceError,
    RawCounterReading,
)
from blkstat.monitoring.rates import compute_snapshot, counter_deltas
from blkstat.monitoring.store import SnapshotStore

logger = logging.getLogger(__name__)

# Errors a tick recovers from (isolate) or escalates; anything else is a bug
SAMPLER_ERRORS = (CounterSourceError, CounterParseError)


class SamplerState(str, Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TickResult:
    """Outcome of one sampler tick.

    ``snapshot`` is set when a snapshot was published, ``error`` when the
    tick failed. Both are None for a tick that only took a baseline.
    """

    device: str
    state: SamplerState
    snapshot: Snapshot | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def next_deadline(deadline: float, now: float, interval: float) -> tuple[float, int]:
    """Advance a periodic deadline past ``now``.

    Returns the next deadline and the number of ticks that were missed
    because the previous tick overran. Missed ticks are dropped rather
    than fired back to back.
    """
    if now < deadline:
        return deadline + interval, 0
    missed = int((now - deadline) // interval)
    return deadline + (missed + 1) * interval, missed


class PeriodicTicker:
    """Fixed-rate ticker that never queues ticks.

    Deadlines are spaced by exactly ``interval`` seconds on the monotonic
    clock. If the caller spends longer than one interval between waits, the
    overdue tick fires immediately and later missed ticks are skipped.
    """

    def __init__(
        self,
        interval: float,
        stop_event: threading.Event,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not math.isfinite(interval) or interval <= 0:
            raise ValueError(f"Ticker interval must be positive and finite, got {interval}")
        self._interval = interval
        self._stop_event = stop_event
        self._clock = clock
        self._deadline = clock() + interval
        self.dropped = 0

    def wait(self) -> bool:
        """Block until the next tick. Returns False once stop is requested."""
        delay = self._deadline - self._clock()
        if delay > 0:
            if self._stop_event.wait(delay):
                return False
        elif self._stop_event.is_set():
            return False

        self._deadline, missed = next_deadline(self._deadline, self._clock(), self._interval)
        if missed:
            self.dropped += missed
            logger.debug(f"Dropped {missed} overdue tick(s)")
        return True


class DeviceSampler:
    """Samples one block device on a fixed interval and publishes rates."""

    def __init__(
        self,
        device: str,
        store: SnapshotStore,
        interval_seconds: float,
        root: Path | str = DEFAULT_SYS_BLOCK_ROOT,
        policy: FailurePolicy = FailurePolicy.ISOLATE,
        on_fatal: Callable[[str, Exception], None] | None = None,
    ) -> None:
        """Initialize the sampler.

        Args:
            device: Block device name (e.g. "sda")
            store: Store to publish snapshots into; must have ``device`` registered
            interval_seconds: Sample interval, also the rate denominator
            root: Directory holding <device>/stat
            policy: What to do when the counter source fails
            on_fatal: Called from the sampler thread with (device, error) when
                a failure stops the sampling thread
        """
        if device not in store:
            raise KeyError(f"Device not registered in store: {device}")
        if not math.isfinite(interval_seconds) or interval_seconds <= 0:
            raise ValueError(
                f"Sample interval must be positive and finite, got {interval_seconds}"
            )

        self.device = device
        self._store = store
        self._interval_seconds = interval_seconds
        self._root = Path(root)
        self._policy = policy
        self._on_fatal = on_fatal

        self._source: CounterSource | None = None
        self._baseline: RawCounterReading | None = None
        self._state = SamplerState.INITIALIZING
        self._last_error: Exception | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> SamplerState:
        return self._state

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Open the source, take the baseline, then start the sampling thread.

        Raises:
            CounterSourceError, CounterParseError: Under FailurePolicy.ESCALATE,
                if the initial open or baseline read fails
        """
        if self._thread is not None:
            logger.warning(f"Sampler for {self.device} already running")
            return

        result = self.tick()
        if not result.ok and self._policy is FailurePolicy.ESCALATE:
            raise result.error  # type: ignore[misc]

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._monitor_loop, name=f"sampler-{self.device}", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the sampling thread and close the counter source."""
        self._stop_event.set()
        if self._thread is not None:
            if self._thread is not threading.current_thread():
                self._thread.join(timeout=timeout)
            self._thread = None
        self._close_source()
        if self._state is not SamplerState.FAILED:
            self._state = SamplerState.STOPPED

    def tick(self) -> TickResult:
        """Run one read-compute-publish cycle.

        Without a baseline (first tick, or after a failure) this only opens
        the source and reads the baseline; nothing is published.
        """
        if self._state in (SamplerState.FAILED, SamplerState.STOPPED):
            return TickResult(self.device, self._state)

        try:
            if self._baseline is None:
                self._initialize()
                return TickResult(self.device, self._state)
            current = self._source.read()  # type: ignore[union-attr]
        except SAMPLER_ERRORS as e:
            return self._handle_error(e)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"{self.device} deltas: {counter_deltas(self._baseline, current)}")

        snapshot = compute_snapshot(self._baseline, current, self._interval_seconds)
        self._store.publish(self.device, snapshot)
        self._baseline = current
        return TickResult(self.device, self._state, snapshot=snapshot)

    def _initialize(self) -> None:
        if self._source is None:
            self._source = CounterSource.open(self.device, self._root)
        self._baseline = self._source.read()
        if self._last_error is not None:
            logger.info(f"Sampler for {self.device} recovered")
            self._last_error = None
        self._state = SamplerState.RUNNING
        logger.debug(f"Sampler for {self.device} took baseline from {self._source.path}")

    def _handle_error(self, error: Exception) -> TickResult:
        self._reset(error)
        if self._policy is FailurePolicy.ESCALATE:
            self._state = SamplerState.FAILED
            logger.error(f"Sampler for {self.device} failed: {error}")
        else:
            self._state = SamplerState.INITIALIZING
            logger.warning(f"Sampler for {self.device} failed, retrying next tick: {error}")
        return TickResult(self.device, self._state, error=error)

    def _reset(self, error: Exception) -> None:
        """Drop the baseline and the handle and withdraw the published snapshot."""
        self._last_error = error
        self._baseline = None
        self._close_source()
        self._store.withdraw(self.device)

    def _close_source(self) -> None:
        if self._source is not None:
            self._source.close()
            self._source = None

    def _monitor_loop(self) -> None:
        """Background loop that ticks until stopped or failed.

        An unexpected exception ends the thread under either policy: it is
        logged with its traceback, the device's snapshot is withdrawn, the
        state becomes FAILED and ``on_fatal`` is notified.
        """
        try:
            ticker = PeriodicTicker(self._interval_seconds, self._stop_event)
            while ticker.wait():
                result = self.tick()
                if self._state is SamplerState.FAILED:
                    if result.error is not None:
                        self._notify_fatal(result.error)
                    return
        except Exception as e:
            logger.exception(f"Sampler thread for {self.device} crashed")
            self._reset(e)
            self._state = SamplerState.FAILED
            self._notify_fatal(e)

    def _notify_fatal(self, error: Exception) -> None:
        if self._on_fatal is not None:
            self._on_fatal(self.device, error)
