"""JSON / JSONC config adapter.

Writes are surgical text edits: only the value under the target key is
replaced (or a new member is inserted), so comments, key order and
formatting elsewhere in the file are untouched.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from caamp.config.parser import ConfigParseError
from caamp.formats import jsonc
from caamp.formats.utils import split_key_path
from caamp.utils.filesystem import atomic_write_text, read_text_file

logger = logging.getLogger(__name__)


def _load_text(path: Path) -> str:
    if not path.exists():
        return ""
    try:
        return read_text_file(path)
    except UnicodeDecodeError as e:
        raise ConfigParseError(f"Invalid UTF-8 in {path}: {e}", path) from e


def read_json(path: Path) -> dict[str, Any]:
    """Read a JSON or JSONC file; a missing or blank file reads as ``{}``.

    Raises:
        ConfigParseError: If the file content is malformed or not an object
    """
    text = _load_text(path)
    if not text.strip():
        return {}

    try:
        data = jsonc.loads(text)
    except jsonc.JsoncSyntaxError as e:
        raise ConfigParseError(f"Invalid JSON in {path}: {e}", path) from e

    if not isinstance(data, dict):
        raise ConfigParseError(f"JSON file must contain an object: {path}", path)
    return data


def write_json(path: Path, key_path: str, entry_name: str, value: Any) -> None:
    """Set ``key_path.entry_name`` to ``value`` in a JSON or JSONC file."""
    text = _load_text(path)
    segments = [*split_key_path(key_path), entry_name]

    try:
        updated = jsonc.set_value(text, segments, value)
    except jsonc.JsoncSyntaxError as e:
        raise ConfigParseError(f"Invalid JSON in {path}: {e}", path) from e

    if not updated.endswith("\n"):
        updated += "\n"
    atomic_write_text(path, updated)
    logger.debug("Wrote %s.%s to %s", key_path, entry_name, path)


def remove_json(path: Path, key_path: str, entry_name: str) -> bool:
    """Remove ``key_path.entry_name`` from a JSON or JSONC file.

    Returns:
        True if the entry existed and was removed
    """
    text = _load_text(path)
    segments = [*split_key_path(key_path), entry_name]

    try:
        updated = jsonc.remove_value(text, segments)
    except jsonc.JsoncSyntaxError as e:
        raise ConfigParseError(f"Invalid JSON in {path}: {e}", path) from e

    if updated is None:
        return False
    atomic_write_text(path, updated)
    logger.debug("Removed %s.%s from %s", key_path, entry_name, path)
    return True
