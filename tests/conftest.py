"""Shared fixtures: a fake /sys/block tree under tmp_path."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from tests.helpers import format_stat


@pytest.fixture
def sys_block(tmp_path: Path) -> Path:
    root = tmp_path / "sys" / "block"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def write_stat(sys_block: Path) -> Callable[..., Path]:
    """Write (or overwrite) <sys_block>/<device>/stat."""

    def _write(device: str, values: list[int] | str) -> Path:
        device_dir = sys_block / device
        device_dir.mkdir(exist_ok=True)
        path = device_dir / "stat"
        text = values if isinstance(values, str) else format_stat(values)
        path.write_text(text)
        return path

    return _write
