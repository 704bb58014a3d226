"""Tests for caamp.formats.utils module."""

from caamp.formats.utils import (
    deep_merge,
    get_nested_value,
    remove_nested_value,
    set_nested_value,
    split_key_path,
)


class TestSplitKeyPath:
    def test_splits_dots(self):
        assert split_key_path("mcp.servers") == ["mcp", "servers"]

    def test_single_segment(self):
        assert split_key_path("mcpServers") == ["mcpServers"]


class TestDeepMerge:
    """Tests for deep_merge."""

    def test_merges_nested_mappings(self):
        """Nested mappings merge, scalars are replaced."""
        target = {"a": {"x": 1, "y": 2}, "b": 1}
        source = {"a": {"y": 3, "z": 4}, "b": 2}

        assert deep_merge(target, source) == {"a": {"x": 1, "y": 3, "z": 4}, "b": 2}

    def test_does_not_mutate_target(self):
        """The target mapping is left untouched."""
        target = {"a": {"x": 1}}

        deep_merge(target, {"a": {"y": 2}})

        assert target == {"a": {"x": 1}}


class TestNestedValues:
    """Tests for get/set/remove helpers."""

    def test_get_missing_returns_none(self):
        """Missing segments yield None."""
        assert get_nested_value({"a": {"b": 1}}, "a.c") is None
        assert get_nested_value({"a": 1}, "a.b") is None

    def test_set_creates_intermediates(self):
        """Intermediate mappings are created."""
        assert set_nested_value({}, "mcp.servers", "fs", {"command": "x"}) == {
            "mcp": {"servers": {"fs": {"command": "x"}}}
        }

    def test_set_keeps_siblings_and_input(self):
        """Siblings are kept and the input is not mutated."""
        data = {"mcp": {"servers": {"old": 1}, "enabled": True}, "theme": "dark"}

        result = set_nested_value(data, "mcp.servers", "new", 2)

        assert result == {"mcp": {"servers": {"old": 1, "new": 2}, "enabled": True}, "theme": "dark"}
        assert data["mcp"]["servers"] == {"old": 1}

    def test_set_replaces_non_mapping(self):
        """A scalar on the key path is replaced by a mapping."""
        assert set_nested_value({"mcp": "off"}, "mcp", "fs", 1) == {"mcp": {"fs": 1}}

    def test_remove(self):
        """Removal reports whether the entry existed."""
        data = {"servers": {"a": 1, "b": 2}}

        assert remove_nested_value(data, "servers", "a") is True
        assert remove_nested_value(data, "servers", "a") is False
        assert data == {"servers": {"b": 2}}
