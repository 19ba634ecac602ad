"""Latest-snapshot store shared by the samplers and the HTTP endpoint.

Each registered device owns one cell holding a reference to an immutable
Snapshot. Publishing rebinds that reference in a single assignment, so a
reader sees either the previous Snapshot or the new one, never a mix, and
neither side takes a lock.
"""

from __future__ import annotations

from blkstat.core.schemas import Snapshot


class _Cell:
    """Holder for one device's latest snapshot."""

    __slots__ = ("snapshot",)

    def __init__(self) -> None:
        self.snapshot: Snapshot | None = None


class SnapshotStore:
    """Latest Snapshot per device for a registry fixed at construction.

    Each device must have a single writer (its sampler). Any number of
    threads may read concurrently.
    """

    def __init__(self, devices: list[str] | tuple[str, ...]) -> None:
        self._devices: tuple[str, ...] = tuple(dict.fromkeys(devices))
        # Keys never change after this point, only the cells' contents
        self._cells: dict[str, _Cell] = {device: _Cell() for device in self._devices}

    @property
    def devices(self) -> tuple[str, ...]:
        """Registered device names in registration order."""
        return self._devices

    def _cell(self, device: str) -> _Cell:
        try:
            return self._cells[device]
        except KeyError:
            raise KeyError(f"Device not registered: {device}") from None

    def publish(self, device: str, snapshot: Snapshot) -> None:
        """Replace the device's snapshot (last write wins)."""
        self._cell(device).snapshot = snapshot

    def withdraw(self, device: str) -> None:
        """Make the device absent until its next publish."""
        self._cell(device).snapshot = None

    def get(self, device: str) -> Snapshot | None:
        return self._cell(device).snapshot

    def read_all(self) -> dict[str, Snapshot]:
        """Point-in-time view of every device that has a snapshot."""
        view: dict[str, Snapshot] = {}
        for device in self._devices:
            snapshot = self._cells[device].snapshot
            if snapshot is not None:
                view[device] = snapshot
        return view

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, device: object) -> bool:
        return device in self._cells
