"""YAML config adapter."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from caamp.config.parser import ConfigParseError
from caamp.formats.utils import remove_nested_value, set_nested_value
from caamp.utils.filesystem import atomic_write_text, read_text_file

logger = logging.getLogger(__name__)


def read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML file; a missing or empty file reads as ``{}``.

    Raises:
        ConfigParseError: If the file content is malformed or not a mapping
    """
    if not path.exists():
        return {}

    try:
        result = yaml.safe_load(read_text_file(path))
    except UnicodeDecodeError as e:
        raise ConfigParseError(f"Invalid UTF-8 in {path}: {e}", path) from e
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Invalid YAML in {path}: {e}", path) from e

    if result is None:
        return {}
    if not isinstance(result, dict):
        raise ConfigParseError(f"YAML file must contain a mapping: {path}", path)
    return result


def _dump(data: dict[str, Any]) -> str:
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)


def write_yaml(path: Path, key_path: str, entry_name: str, value: Any) -> None:
    """Set ``key_path.entry_name`` to ``value`` in a YAML file."""
    data = set_nested_value(read_yaml(path), key_path, entry_name, value)
    atomic_write_text(path, _dump(data))
    logger.debug("Wrote %s.%s to %s", key_path, entry_name, path)


def remove_yaml(path: Path, key_path: str, entry_name: str) -> bool:
    """Remove ``key_path.entry_name`` from a YAML file."""
    if not path.exists():
        return False
    data = read_yaml(path)
    if not remove_nested_value(data, key_path, entry_name):
        return False
    atomic_write_text(path, _dump(data))
    logger.debug("Removed %s.%s from %s", key_path, entry_name, path)
    return True
