"""Reading and removing MCP server entries in provider config files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from caamp.config.parser import ConfigError
from caamp.config.schemas import Provider, Scope
from caamp.formats import get_nested_value, read_config, remove_config

logger = logging.getLogger(__name__)


@dataclass
class McpServerEntry:
    """An MCP server entry found in a provider's config file."""

    name: str
    provider_id: str
    provider_name: str
    scope: Scope
    config_path: Path
    config: dict[str, Any] = field(default_factory=dict)


def resolve_config_path(provider: Provider, scope: Scope, project_dir: Path | None = None) -> Path | None:
    """Get the config file a provider uses for a scope.

    Returns:
        The config path, or None if the provider has no config for the scope
    """
    if scope == "project":
        if not provider.config_path_project:
            return None
        return (project_dir or Path.cwd()) / provider.config_path_project
    return provider.config_path_global


def read_server_entries(provider: Provider, config_path: Path) -> dict[str, Any]:
    """Return the mapping under the provider's config key (empty if absent).

    Raises:
        ConfigError: If the file exists but cannot be parsed
    """
    config = read_config(config_path, provider.config_format)
    servers = get_nested_value(config, provider.config_key)
    return servers if isinstance(servers, dict) else {}


def list_mcp_servers(provider: Provider, scope: Scope, project_dir: Path | None = None) -> list[McpServerEntry]:
    """List the MCP servers configured for one provider and scope.

    Unreadable config files are treated as empty.
    """
    config_path = resolve_config_path(provider, scope, project_dir)
    if config_path is None or not config_path.exists():
        return []

    try:
        servers = read_server_entries(provider, config_path)
    except ConfigError as e:
        logger.debug("Skipping unreadable config %s: %s", config_path, e)
        return []

    return [
        McpServerEntry(
            name=name,
            provider_id=provider.id,
            provider_name=provider.tool_name,
            scope=scope,
            config_path=config_path,
            config=value if isinstance(value, dict) else {},
        )
        for name, value in servers.items()
    ]


def list_all_mcp_servers(
    providers: list[Provider], scope: Scope, project_dir: Path | None = None
) -> list[McpServerEntry]:
    """List MCP servers across providers, reading each distinct config file once."""
    seen: set[Path] = set()
    entries: list[McpServerEntry] = []

    for provider in providers:
        config_path = resolve_config_path(provider, scope, project_dir)
        if config_path is None or config_path in seen:
            continue
        seen.add(config_path)
        entries.extend(list_mcp_servers(provider, scope, project_dir))

    return entries


def remove_mcp_server(
    provider: Provider, server_name: str, scope: Scope, project_dir: Path | None = None
) -> bool:
    """Remove a named MCP server from a provider's config.

    Returns:
        True if the entry existed and was removed
    """
    config_path = resolve_config_path(provider, scope, project_dir)
    if config_path is None:
        return False
    removed = remove_config(config_path, provider.config_format, provider.config_key, server_name)
    if removed:
        logger.info("Removed MCP server '%s' from %s", server_name, config_path)
    return removed
