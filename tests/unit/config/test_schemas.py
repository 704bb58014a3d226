"""Tests for caamp.config.schemas module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from caamp.config.schemas import LockEntry, LockFile, McpMutation, McpServerConfig, Provider


class TestProvider:
    """Tests for the Provider model."""

    def test_accepts_camel_case_registry_keys(self):
        """Registry entries validate through their camelCase aliases."""
        provider = Provider.model_validate(
            {
                "id": "zed",
                "toolName": "Zed",
                "pathGlobal": "/home/dev/.config/zed",
                "instructFile": "AGENTS.md",
                "configKey": "context_servers",
                "configFormat": "jsonc",
                "configPathGlobal": "/home/dev/.config/zed/settings.json",
                "configPathProject": ".zed/settings.json",
                "supportedTransports": ["stdio", "http"],
                "mcpTransform": "zed",
            }
        )

        assert provider.tool_name == "Zed"
        assert provider.config_path_global == Path("/home/dev/.config/zed/settings.json")
        assert provider.supported_transports == ("stdio", "http")
        assert provider.priority == "low"
        assert provider.supports_headers is False

    def test_is_frozen(self, make_provider):
        """Providers are immutable."""
        provider = make_provider()

        with pytest.raises(ValidationError):
            provider.priority = "low"

    @pytest.mark.parametrize("key", ["", "mcp..servers", ".mcp"])
    def test_rejects_bad_config_key(self, make_provider, key: str):
        """Empty key paths and empty segments are rejected."""
        with pytest.raises(ValidationError):
            make_provider(config_key=key)

    def test_rejects_unknown_format(self, make_provider):
        """Only the four supported formats validate."""
        with pytest.raises(ValidationError):
            make_provider(config_format="ini")


class TestMcpServerConfig:
    """Tests for the canonical server config."""

    def test_effective_transport(self):
        """Explicit type wins, then http for urls, then stdio."""
        assert McpServerConfig(command="npx").transport == "stdio"
        assert McpServerConfig(url="https://x").transport == "http"
        assert McpServerConfig(type="sse", url="https://x").transport == "sse"

    def test_requires_url_or_command(self):
        """A config with neither url nor command is rejected."""
        with pytest.raises(ValidationError):
            McpServerConfig()

    def test_rejects_stdio_remote(self):
        """A url cannot use the stdio transport."""
        with pytest.raises(ValidationError):
            McpServerConfig(type="stdio", url="https://x")

    def test_canonical_omits_unset(self):
        """Canonical form drops unset fields."""
        config = McpServerConfig(command="npx", args=["-y", "pkg"])

        assert config.to_canonical() == {"command": "npx", "args": ["-y", "pkg"]}
        assert config.is_remote is False


class TestMcpMutation:
    def test_defaults_to_project_scope(self, stdio_config: McpServerConfig):
        assert McpMutation(server_name="fs", config=stdio_config).scope == "project"

    def test_rejects_blank_name(self, stdio_config: McpServerConfig):
        with pytest.raises(ValidationError):
            McpMutation(server_name="  ", config=stdio_config)

    def test_rejects_unknown_scope(self, stdio_config: McpServerConfig):
        with pytest.raises(ValidationError):
            McpMutation(server_name="fs", config=stdio_config, scope="workspace")


class TestLockFile:
    """Tests for the lock file schema."""

    def test_round_trips_camel_case(self):
        """Lock files serialize with camelCase keys and omit unset optionals."""
        lock = LockFile(
            mcp_servers={
                "fs": LockEntry(
                    name="fs",
                    scoped_name="fs",
                    source="@scope/fs",
                    source_type="package",
                    installed_at="2026-01-01T00:00:00+00:00",
                    agents=["cursor"],
                )
            }
        )

        data = lock.to_json_dict()

        assert data["version"] == 1
        assert data["mcpServers"]["fs"]["sourceType"] == "package"
        assert data["mcpServers"]["fs"]["installedAt"] == "2026-01-01T00:00:00+00:00"
        assert "lastSelectedAgents" not in data
        assert LockFile.model_validate(data) == lock
