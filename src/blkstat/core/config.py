"""Configuration loading and saving utilities.

Supports YAML and JSON configuration files with schema validation.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from blkstat.core.schemas import ServerConfig


def load_config(path: Path | str, overrides: dict[str, Any] | None = None) -> ServerConfig:
    """Load and validate a server configuration file.

    Args:
        path: Path to YAML or JSON configuration file
        overrides: Values that replace the file's (e.g. from CLI options);
            ``None`` entries are ignored

    Returns:
        Validated ServerConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported
        pydantic.ValidationError: If config is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    with open(path, encoding="utf-8") as f:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")

    return build_config(data, overrides)


def build_config(
    data: dict[str, Any] | None = None, overrides: dict[str, Any] | None = None
) -> ServerConfig:
    """Merge file data with overrides and validate the result."""
    merged: dict[str, Any] = dict(data or {})
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    return ServerConfig.model_validate(merged)


def save_config(config: ServerConfig, path: Path | str) -> None:
    """Write a configuration to YAML or JSON, chosen by file suffix."""
    path = Path(path)
    data = config.model_dump(mode="json")
    path.parent.mkdir(parents=True, exist_ok=True)

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    elif suffix == ".json":
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    else:
        raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")
