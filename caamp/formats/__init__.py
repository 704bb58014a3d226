"""Format-agnostic config file access.

Routes reads and writes to the JSON/JSONC, YAML or TOML adapter by the
provider's declared config format.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from caamp.config.parser import ConfigParseError
from caamp.formats.json_format import read_json, remove_json, write_json
from caamp.formats.toml_format import read_toml, remove_toml, write_toml
from caamp.formats.utils import deep_merge, get_nested_value, set_nested_value
from caamp.formats.yaml_format import read_yaml, remove_yaml, write_yaml

__all__ = [
    "ConfigParseError",
    "UnsupportedFormatError",
    "deep_merge",
    "get_nested_value",
    "read_config",
    "remove_config",
    "set_nested_value",
    "write_config",
]


class UnsupportedFormatError(ValueError):
    """A config format outside json, jsonc, yaml and toml was requested."""

    def __init__(self, fmt: str):
        self.format = fmt
        super().__init__(f"Unsupported config format: {fmt}")


_READERS = {
    "json": read_json,
    "jsonc": read_json,
    "yaml": read_yaml,
    "toml": read_toml,
}

_WRITERS = {
    "json": write_json,
    "jsonc": write_json,
    "yaml": write_yaml,
    "toml": write_toml,
}

_REMOVERS = {
    "json": remove_json,
    "jsonc": remove_json,
    "yaml": remove_yaml,
    "toml": remove_toml,
}


def _lookup(table: dict[str, Any], fmt: str) -> Any:
    try:
        return table[fmt]
    except KeyError:
        raise UnsupportedFormatError(fmt) from None


def read_config(path: Path, fmt: str) -> dict[str, Any]:
    """Read a config file as a mapping. Missing files read as ``{}``.

    Raises:
        ConfigParseError: If existing content is malformed
        UnsupportedFormatError: If ``fmt`` is not a known format
    """
    return _lookup(_READERS, fmt)(path)


def write_config(path: Path, fmt: str, key_path: str, entry_name: str, entry_value: Any) -> None:
    """Set exactly ``key_path.entry_name`` in a config file, keeping every other key.

    Intermediate mappings and parent directories are created as needed.

    Raises:
        ConfigParseError: If existing content is malformed
        UnsupportedFormatError: If ``fmt`` is not a known format
    """
    _lookup(_WRITERS, fmt)(path, key_path, entry_name, entry_value)


def remove_config(path: Path, fmt: str, key_path: str, entry_name: str) -> bool:
    """Remove ``key_path.entry_name`` from a config file.

    Returns:
        True if the entry existed and was removed
    """
    return _lookup(_REMOVERS, fmt)(path, key_path, entry_name)
