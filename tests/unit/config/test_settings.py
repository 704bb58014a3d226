"""Tests for caamp.config.settings module."""

from pathlib import Path

import pytest

from caamp.config.parser import ConfigError
from caamp.config.settings import LOCK_FILE_NAME, load_settings


class TestLoadSettings:
    """Tests for load_settings function."""

    def test_defaults_without_file(self, temp_dir: Path):
        """Defaults apply when no config.toml exists."""
        settings = load_settings(temp_dir)

        assert settings.agents_home == temp_dir
        assert settings.lock_retries == 40
        assert settings.lock_delay == 0.025
        assert settings.default_policy == "fail"
        assert settings.lock_file_path == temp_dir / LOCK_FILE_NAME

    def test_reads_caamp_table(self, temp_dir: Path):
        """Values come from the [caamp] table."""
        (temp_dir / "config.toml").write_text(
            '[caamp]\nlock_retries = 80\ndefault_policy = "skip"\ndefault_minimum_priority = "medium"\n'
        )

        settings = load_settings(temp_dir)

        assert settings.lock_retries == 80
        assert settings.default_policy == "skip"
        assert settings.default_minimum_priority == "medium"

    def test_uses_agents_home_env(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch):
        """Without an explicit home, AGENTS_HOME is used."""
        monkeypatch.setenv("AGENTS_HOME", str(temp_dir))

        assert load_settings().agents_home == temp_dir.resolve()

    def test_invalid_values_raise(self, temp_dir: Path):
        """Invalid values raise ConfigError."""
        (temp_dir / "config.toml").write_text('[caamp]\ndefault_policy = "merge"\n')

        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings(temp_dir)

    def test_non_table_section_raises(self, temp_dir: Path):
        """A non-table [caamp] value raises ConfigError."""
        (temp_dir / "config.toml").write_text('caamp = "yes"\n')

        with pytest.raises(ConfigError, match="must be a table"):
            load_settings(temp_dir)
