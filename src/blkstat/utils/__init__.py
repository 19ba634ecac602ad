"""Utilities module - logging setup."""

from __future__ import annotations

from blkstat.utils.logging import setup_logging

__all__ = ["setup_logging"]
