"""TOML config adapter (read with tomllib, write with tomli_w)."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

from caamp.config.parser import ConfigParseError
from caamp.formats.utils import remove_nested_value, set_nested_value
from caamp.utils.filesystem import atomic_write_text, read_text_file

logger = logging.getLogger(__name__)


def read_toml(path: Path) -> dict[str, Any]:
    """Read a TOML file; a missing or blank file reads as ``{}``.

    Raises:
        ConfigParseError: If the file content is malformed
    """
    if not path.exists():
        return {}

    try:
        text = read_text_file(path)
    except UnicodeDecodeError as e:
        raise ConfigParseError(f"Invalid UTF-8 in {path}: {e}", path) from e
    if not text.strip():
        return {}

    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML in {path}: {e}", path) from e


def write_toml(path: Path, key_path: str, entry_name: str, value: Any) -> None:
    """Set ``key_path.entry_name`` to ``value`` in a TOML file."""
    data = set_nested_value(read_toml(path), key_path, entry_name, value)
    atomic_write_text(path, tomli_w.dumps(data))
    logger.debug("Wrote %s.%s to %s", key_path, entry_name, path)


def remove_toml(path: Path, key_path: str, entry_name: str) -> bool:
    """Remove ``key_path.entry_name`` from a TOML file."""
    if not path.exists():
        return False
    data = read_toml(path)
    if not remove_nested_value(data, key_path, entry_name):
        return False
    atomic_write_text(path, tomli_w.dumps(data))
    logger.debug("Removed %s.%s from %s", key_path, entry_name, path)
    return True
