"""Tests for caamp.config.parser module."""

from pathlib import Path

import pytest

from caamp.config.parser import ConfigError, ConfigParseError, load_toml


class TestLoadToml:
    """Tests for load_toml function."""

    def test_loads_valid_toml(self, temp_dir: Path):
        """Loads a valid TOML file."""
        file_path = temp_dir / "config.toml"
        file_path.write_text('[caamp]\nlock_retries = 5\n')

        assert load_toml(file_path) == {"caamp": {"lock_retries": 5}}

    def test_raises_for_invalid_toml(self, temp_dir: Path):
        """Raises ConfigError for invalid TOML."""
        file_path = temp_dir / "config.toml"
        file_path.write_text("[caamp\n")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_toml(file_path)

    def test_raises_for_invalid_utf8(self, temp_dir: Path):
        """Raises ConfigError for undecodable bytes."""
        file_path = temp_dir / "config.toml"
        file_path.write_bytes(b"name = \"\xff\"\n")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_toml(file_path)


class TestConfigParseError:
    def test_carries_path(self, temp_dir: Path):
        error = ConfigParseError("bad", temp_dir / "x.json")

        assert isinstance(error, ConfigError)
        assert error.path == temp_dir / "x.json"
        assert str(error) == "bad"
