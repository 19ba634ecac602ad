"""Supervised pool of per-device samplers.

The pool owns one DeviceSampler per configured device, starts and stops
them together and applies the failure policy across devices: under
``isolate`` a broken device only withdraws its own snapshot, under
``escalate`` the first failure is recorded and reported through
``on_fatal`` so the caller can shut the process down.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from blkstat.core.schemas import FailurePolicy, ServerConfig
from blkstat.monitoring.sampler import SAMPLER_ERRORS, DeviceSampler, SamplerState
from blkstat.monitoring.store import SnapshotStore

logger = logging.getLogger(__name__)


class SamplerPool:
    """One sampler thread per device in the store's registry."""

    def __init__(
        self,
        config: ServerConfig,
        store: SnapshotStore,
        on_fatal: Callable[[str, Exception], None] | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self.on_fatal = on_fatal
        self._fatal_lock = threading.Lock()
        self._fatal_error: Exception | None = None
        self._fatal_device: str | None = None
        self._failed = threading.Event()

        missing = [d for d in config.devices if d not in store]
        if missing:
            raise ValueError(f"Devices not registered in store: {', '.join(missing)}")

        self._samplers: dict[str, DeviceSampler] = {
            device: DeviceSampler(
                device,
                store,
                interval_seconds=config.sample_interval_seconds,
                root=config.sys_block_root,
                policy=config.failure_policy,
                on_fatal=self._handle_fatal,
            )
            for device in config.devices
        }

    @property
    def samplers(self) -> dict[str, DeviceSampler]:
        return dict(self._samplers)

    @property
    def fatal_error(self) -> Exception | None:
        """First error escalated by any sampler, if any."""
        return self._fatal_error

    @property
    def fatal_device(self) -> str | None:
        return self._fatal_device

    def wait_for_failure(self, timeout: float | None = None) -> bool:
        """Block until a sampler escalates a failure. Returns True if one did."""
        return self._failed.wait(timeout)

    def start(self) -> None:
        """Start every sampler.

        Raises:
            CounterSourceError, CounterParseError: Under FailurePolicy.ESCALATE,
                if any device fails to initialize; samplers already started
                are stopped first
        """
        started: list[DeviceSampler] = []
        for device, sampler in self._samplers.items():
            try:
                sampler.start()
            except SAMPLER_ERRORS as e:
                self._record_fatal(device, e)
                for s in started:
                    s.stop()
                raise
            started.append(sampler)
            if sampler.state is SamplerState.RUNNING:
                logger.info(f"Sampling {device} every {sampler.interval_seconds:g}s")
            else:
                logger.error(
                    f"Device {device} unavailable, will retry every "
                    f"{sampler.interval_seconds:g}s: {sampler.last_error}"
                )

    def stop(self) -> None:
        """Stop every sampler and close its counter source."""
        for sampler in self._samplers.values():
            sampler.stop()
        logger.debug("Stopped all samplers")

    def states(self) -> dict[str, SamplerState]:
        return {device: sampler.state for device, sampler in self._samplers.items()}

    def _record_fatal(self, device: str, error: Exception) -> bool:
        with self._fatal_lock:
            if self._fatal_error is not None:
                return False
            self._fatal_error = error
            self._fatal_device = device
        self._failed.set()
        return True

    def _handle_fatal(self, device: str, error: Exception) -> None:
        if self._config.failure_policy is not FailurePolicy.ESCALATE:
            return
        if self._record_fatal(device, error) and self.on_fatal is not None:
            self.on_fatal(device, error)

    def __enter__(self) -> SamplerPool:
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()
