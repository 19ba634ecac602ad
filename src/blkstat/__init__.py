"""blkstat - per-device block I/O rates over HTTP."""

from __future__ import annotations

__version__ = "0.1.0"

from blkstat.core.schemas import FailurePolicy, ServerConfig, Snapshot  # noqa: E402

__all__ = [
    "FailurePolicy",
    "ServerConfig",
    "Snapshot",
    "__version__",
]
