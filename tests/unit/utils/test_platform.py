"""Tests for caamp.utils.platform module."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from caamp.utils.platform import (
    get_agents_home,
    get_env,
    get_os,
    get_platform_locations,
    normalize_home_override,
)


class TestGetOS:
    """Tests for get_os function."""

    def test_returns_valid_os(self):
        """Returns one of the valid OS values."""
        assert get_os() in ("windows", "linux", "macos")

    @patch("platform.system")
    def test_darwin_returns_macos(self, mock_system):
        """Darwin platform returns macos."""
        mock_system.return_value = "Darwin"
        assert get_os() == "macos"

    @patch("platform.system")
    def test_windows_returns_windows(self, mock_system):
        """Windows platform returns windows."""
        mock_system.return_value = "Windows"
        assert get_os() == "windows"

    @patch("platform.system")
    def test_unknown_returns_linux(self, mock_system):
        """Unknown platform defaults to linux."""
        mock_system.return_value = "FreeBSD"
        assert get_os() == "linux"


class TestGetEnv:
    """Tests for get_env function."""

    def test_returns_existing_env_var(self):
        """Returns value of an existing variable."""
        with patch.dict(os.environ, {"CAAMP_TEST_VAR": "value"}):
            assert get_env("CAAMP_TEST_VAR") == "value"

    def test_returns_default_for_missing(self):
        """Returns the default for a missing variable."""
        assert get_env("CAAMP_NONEXISTENT_VAR_12345", "fallback") == "fallback"


class TestPlatformLocations:
    """Tests for get_platform_locations."""

    @patch("caamp.utils.platform.get_home_directory", return_value="/home/dev")
    @patch("caamp.utils.platform.get_os", return_value="linux")
    def test_linux_uses_xdg_config(self, _os, _home, monkeypatch: pytest.MonkeyPatch):
        """Linux honors XDG_CONFIG_HOME."""
        monkeypatch.setenv("XDG_CONFIG_HOME", "/tmp/xdg")

        locations = get_platform_locations()

        assert locations.home == Path("/home/dev")
        assert locations.config == Path("/tmp/xdg")
        assert locations.vscode_config == Path("/tmp/xdg/Code/User")
        assert locations.zed_config == Path("/tmp/xdg/zed")

    @patch("caamp.utils.platform.get_home_directory", return_value="/home/dev")
    @patch("caamp.utils.platform.get_os", return_value="linux")
    def test_linux_default_config(self, _os, _home, monkeypatch: pytest.MonkeyPatch):
        """Linux falls back to ~/.config."""
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

        assert get_platform_locations().config == Path("/home/dev/.config")

    @patch("caamp.utils.platform.get_home_directory", return_value="/Users/dev")
    @patch("caamp.utils.platform.get_os", return_value="macos")
    def test_macos_application_support(self, _os, _home):
        """macOS editor configs live under Application Support."""
        locations = get_platform_locations()

        assert locations.vscode_config == Path("/Users/dev/Library/Application Support/Code/User")
        assert locations.claude_desktop_config == Path("/Users/dev/Library/Application Support/Claude")


class TestAgentsHome:
    """Tests for AGENTS_HOME resolution."""

    @patch("caamp.utils.platform.get_home_directory", return_value="/home/dev")
    def test_default(self, _home, monkeypatch: pytest.MonkeyPatch):
        """Defaults to ~/.agents."""
        monkeypatch.delenv("AGENTS_HOME", raising=False)

        assert get_agents_home() == Path("/home/dev/.agents")

    def test_absolute_override(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch):
        """An absolute override is used as is."""
        monkeypatch.setenv("AGENTS_HOME", str(temp_dir))

        assert get_agents_home() == temp_dir.resolve()

    def test_blank_override_ignored(self, monkeypatch: pytest.MonkeyPatch):
        """A whitespace-only override falls back to the default."""
        monkeypatch.setenv("AGENTS_HOME", "   ")

        assert get_agents_home() == Path(os.path.expanduser("~")) / ".agents"

    @patch("caamp.utils.platform.get_home_directory", return_value="/home/dev")
    def test_tilde_forms(self, _home):
        """Tilde forms expand against the home directory."""
        assert normalize_home_override("~") == Path("/home/dev")
        assert normalize_home_override("~/agents") == Path("/home/dev/agents")
