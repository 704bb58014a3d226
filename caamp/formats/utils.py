"""Nested-mapping helpers shared by the config format adapters."""

from __future__ import annotations

from typing import Any


def split_key_path(key_path: str) -> list[str]:
    """Split a dot-notation key path (``"mcp.servers"``) into its segments."""
    return [part for part in key_path.split(".") if part]


def deep_merge(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``source`` into a copy of ``target``.

    Nested mappings are merged; every other value in ``source`` replaces the
    one in ``target``.
    """
    result = dict(target)
    for key, value in source.items():
        existing = result.get(key)
        if isinstance(value, dict) and isinstance(existing, dict):
            result[key] = deep_merge(existing, value)
        else:
            result[key] = value
    return result


def get_nested_value(data: dict[str, Any], key_path: str) -> Any:
    """Return the value at ``key_path``, or None if any segment is missing."""
    current: Any = data
    for part in split_key_path(key_path):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def set_nested_value(
    data: dict[str, Any], key_path: str, entry_name: str, value: Any
) -> dict[str, Any]:
    """Return a copy of ``data`` with ``value`` stored at ``key_path.entry_name``.

    Intermediate mappings are created as needed. Sibling keys at every level
    are kept.
    """
    result = dict(data)
    current = result
    for part in split_key_path(key_path):
        child = current.get(part)
        child = dict(child) if isinstance(child, dict) else {}
        current[part] = child
        current = child
    current[entry_name] = value
    return result


def remove_nested_value(data: dict[str, Any], key_path: str, entry_name: str) -> bool:
    """Delete ``key_path.entry_name`` from ``data`` in place.

    Returns:
        True if the entry existed and was removed
    """
    section = get_nested_value(data, key_path) if key_path else data
    if not isinstance(section, dict) or entry_name not in section:
        return False
    del section[entry_name]
    return True
