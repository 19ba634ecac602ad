"""Reader for the per-device block I/O counter file.

The kernel exposes cumulative counters for each block device in
/sys/block/<device>/stat. The file is small and is rewritten in full on
every update, so each read rewinds to the start and parses it again.

Format (https://www.kernel.org/doc/Documentation/block/stat.txt), leading
fields only; newer kernels append discard and flush counters, which are
ignored:

     0 read I/Os       requests      number of read I/Os processed
     1 read merges     requests      number of read I/Os merged with in-queue I/O
     2 read sectors    sectors       number of sectors read
     3 read ticks      milliseconds  total wait time for read requests
     4 write I/Os      requests      number of write I/Os processed
     5 write merges    requests      number of write I/Os merged with in-queue I/O
     6 write sectors   sectors       number of sectors written
     7 write ticks     milliseconds  total wait time for write requests
     8 in_flight       requests      number of I/Os currently in flight
     9 io_ticks        milliseconds  total time this block device has been active
    10 time_in_queue   milliseconds  total wait time for all requests
"""

from __future__ import annotations

import logging
from dataclasses import astuple, dataclass, fields
from pathlib import Path
from typing import BinaryIO

from blkstat.core.constants import COUNTER_FIELD_COUNT, DEFAULT_SYS_BLOCK_ROOT, STAT_FILE_NAME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawCounterReading:
    """One parse of a device's counter file.

    All fields except ``in_flight`` are cumulative and only grow (until the
    kernel counter wraps, which is not corrected for).
    """

    read_ios: int
    read_merges: int
    read_sectors: int
    read_ticks: int  # ms
    write_ios: int
    write_merges: int
    write_sectors: int
    write_ticks: int  # ms
    in_flight: int  # gauge
    io_ticks: int  # ms
    time_in_queue: int  # ms

    @classmethod
    def from_values(cls, values: list[int] | tuple[int, ...]) -> RawCounterReading:
        """Build a reading from exactly 11 values in kernel field order."""
        if len(values) != COUNTER_FIELD_COUNT:
            raise ValueError(
                f"Expected {COUNTER_FIELD_COUNT} counter values, got {len(values)}"
            )
        return cls(*values)

    def as_tuple(self) -> tuple[int, ...]:
        """Values in kernel field order."""
        return astuple(self)


FIELD_NAMES: tuple[str, ...] = tuple(f.name for f in fields(RawCounterReading))


class CounterParseError(ValueError):
    """The counter file does not match the expected format."""

    def __init__(self, index: int, found: str | None, text: str = "") -> None:
        self.index = index
        self.field = FIELD_NAMES[index]
        self.found = found
        self.text = text
        if found is None:
            detail = "missing"
        else:
            detail = f"found {found!r}, expected a non-negative integer"
        super().__init__(f"Counter field {index} ({self.field}): {detail}")


class CounterSourceError(RuntimeError):
    """The counter file cannot be opened or read."""


def parse_counters(text: str) -> RawCounterReading:
    """Parse the leading 11 whitespace-separated integers of a counter file.

    Args:
        text: Raw content of /sys/block/<device>/stat

    Returns:
        Parsed RawCounterReading

    Raises:
        CounterParseError: If a field is missing or not a non-negative integer
    """
    tokens = text.split()
    values: list[int] = []
    for index in range(COUNTER_FIELD_COUNT):
        if index >= len(tokens):
            raise CounterParseError(index, None, text)
        token = tokens[index]
        # isdigit() also accepts non-ASCII digits, which int() would too
        if not (token.isascii() and token.isdigit()):
            raise CounterParseError(index, token, text)
        values.append(int(token))
    return RawCounterReading.from_values(values)


def stat_path(device: str, root: Path | str = DEFAULT_SYS_BLOCK_ROOT) -> Path:
    """Path of a device's counter file below ``root``."""
    return Path(root) / device / STAT_FILE_NAME


class CounterSource:
    """An open handle on one device's counter file.

    Use :meth:`open` to create one. The handle is kept open for the lifetime
    of the source and rewound on every :meth:`read`.
    """

    def __init__(self, device: str, path: Path, handle: BinaryIO) -> None:
        self.device = device
        self.path = path
        self._handle: BinaryIO | None = handle

    @classmethod
    def open(cls, device: str, root: Path | str = DEFAULT_SYS_BLOCK_ROOT) -> CounterSource:
        """Open the counter file for ``device``.

        Raises:
            CounterSourceError: If the file doesn't exist or can't be opened
        """
        path = stat_path(device, root)
        try:
            # Unbuffered so that every read goes back to the kernel
            handle = open(path, "rb", buffering=0)
        except OSError as e:
            raise CounterSourceError(
                f"Cannot open counter source for device {device} at {path}: {e}"
            ) from e
        logger.debug(f"Opened counter source {path}")
        return cls(device, path, handle)

    @property
    def closed(self) -> bool:
        return self._handle is None

    def read(self) -> RawCounterReading:
        """Rewind and parse the counter file.

        Raises:
            CounterSourceError: On I/O failure or if the source is closed
            CounterParseError: If the content is malformed
        """
        if self._handle is None:
            raise CounterSourceError(f"Counter source for device {self.device} is closed")
        try:
            self._handle.seek(0)
            raw = self._handle.read()
        except OSError as e:
            raise CounterSourceError(f"Error reading {self.path}: {e}") from e
        return parse_counters(raw.decode("ascii", errors="replace"))

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
            logger.debug(f"Closed counter source {self.path}")

    def __enter__(self) -> CounterSource:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
