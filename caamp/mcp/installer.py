"""MCP server installation into provider config files.

The installer resolves the provider's config path for a scope, converts the
canonical server config into the provider's native shape and writes the
single entry through the format layer. Write failures are returned as
results rather than raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from caamp.config.parser import ConfigError
from caamp.config.schemas import McpServerConfig, Provider, Scope
from caamp.formats import write_config
from caamp.mcp.reader import resolve_config_path
from caamp.mcp.transforms import transform_server_config

logger = logging.getLogger(__name__)


@dataclass
class McpInstallResult:
    """Outcome of writing one server entry for one provider and scope."""

    provider_id: str
    server_name: str
    scope: Scope
    config_path: Path | None
    success: bool
    error: str | None = None


def install_mcp_server(
    provider: Provider,
    server_name: str,
    config: McpServerConfig,
    scope: Scope = "project",
    project_dir: Path | None = None,
) -> McpInstallResult:
    """Write one MCP server entry into a provider's config file.

    Failures (no config path for the scope, malformed existing content, I/O
    errors, unsupported formats) are reported in the result, never raised.
    """
    config_path = resolve_config_path(provider, scope, project_dir)
    logger.debug("Installing MCP server '%s' for %s (%s) at %s", server_name, provider.id, scope, config_path)

    if config_path is None:
        return McpInstallResult(
            provider_id=provider.id,
            server_name=server_name,
            scope=scope,
            config_path=None,
            success=False,
            error=f"Provider {provider.id} does not support {scope} config",
        )

    try:
        value = transform_server_config(provider, server_name, config)
        write_config(config_path, provider.config_format, provider.config_key, server_name, value)
    except (ConfigError, OSError, ValueError) as e:
        logger.debug("Writing '%s' to %s failed: %s", server_name, config_path, e)
        return McpInstallResult(
            provider_id=provider.id,
            server_name=server_name,
            scope=scope,
            config_path=config_path,
            success=False,
            error=str(e),
        )

    return McpInstallResult(
        provider_id=provider.id,
        server_name=server_name,
        scope=scope,
        config_path=config_path,
        success=True,
    )


def install_mcp_server_to_all(
    providers: list[Provider],
    server_name: str,
    config: McpServerConfig,
    scope: Scope = "project",
    project_dir: Path | None = None,
) -> list[McpInstallResult]:
    """Install one server for every provider, in order, collecting each result."""
    return [install_mcp_server(p, server_name, config, scope, project_dir) for p in providers]


def build_server_config(
    source_type: str,
    value: str,
    transport: str | None = None,
    headers: dict[str, str] | None = None,
) -> McpServerConfig:
    """Build a canonical server config from a parsed source.

    Args:
        source_type: ``remote`` (url), ``package`` (npm package) or anything
            else for a raw command line
        value: The url, package name or command line
        transport: Transport for remote sources (default ``http``)
        headers: Optional request headers for remote sources
    """
    if source_type == "remote":
        return McpServerConfig(type=transport or "http", url=value, headers=headers or None)

    if source_type == "package":
        return McpServerConfig(command="npx", args=["-y", value])

    parts = value.split()
    if not parts:
        raise ValueError("Command source cannot be empty")
    return McpServerConfig(command=parts[0], args=parts[1:])
