"""Service module - HTTP endpoint."""

from __future__ import annotations

from blkstat.service.server import create_app, create_server

__all__ = ["create_app", "create_server"]
