"""Provider-native MCP server shapes.

Each provider declares an ``mcpTransform`` name in the registry. The
transform turns a canonical :class:`McpServerConfig` into the value that
provider expects under its config key. Transforms register themselves with
:func:`register_transform`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from caamp.config.schemas import McpServerConfig

if TYPE_CHECKING:
    from caamp.config.schemas import Provider

McpTransform = Callable[[str, McpServerConfig], Any]

TRANSFORMS: dict[str, McpTransform] = {}

# Seconds; Goose kills extensions that stay silent for longer.
GOOSE_TIMEOUT = 300


def register_transform(name: str) -> Callable[[McpTransform], McpTransform]:
    """Decorator for transform registration.

    Usage:
        @register_transform("goose")
        def transform_goose(server_name, config):
            ...
    """

    def decorator(func: McpTransform) -> McpTransform:
        TRANSFORMS[name] = func
        return func

    return decorator


def _with_optional(base: dict[str, Any], **optional: Any) -> dict[str, Any]:
    for key, value in optional.items():
        if value:
            base[key] = value
    return base


@register_transform("passthrough")
def transform_passthrough(server_name: str, config: McpServerConfig) -> dict[str, Any]:
    return config.to_canonical()


@register_transform("goose")
def transform_goose(server_name: str, config: McpServerConfig) -> dict[str, Any]:
    """Goose extensions carry their own name, an enable flag and a timeout."""
    if config.url:
        result = {
            "name": server_name,
            "type": "sse" if config.type == "sse" else "streamable_http",
            "uri": config.url,
        }
        _with_optional(result, headers=config.headers)
    else:
        result = {
            "name": server_name,
            "type": "stdio",
            "cmd": config.command,
            "args": config.args or [],
        }
        _with_optional(result, envs=config.env)
    result["enabled"] = True
    result["timeout"] = GOOSE_TIMEOUT
    return result


@register_transform("zed")
def transform_zed(server_name: str, config: McpServerConfig) -> dict[str, Any]:
    if config.url:
        result = {"source": "custom", "type": config.transport, "url": config.url}
        return _with_optional(result, headers=config.headers)
    result = {"source": "custom", "command": config.command, "args": config.args or []}
    return _with_optional(result, env=config.env)


@register_transform("opencode")
def transform_opencode(server_name: str, config: McpServerConfig) -> dict[str, Any]:
    """OpenCode distinguishes ``local`` and ``remote`` servers."""
    if config.url:
        result = {"type": "remote", "url": config.url, "enabled": True}
        return _with_optional(result, headers=config.headers)
    result = {"type": "local", "command": config.command, "args": config.args or [], "enabled": True}
    return _with_optional(result, environment=config.env)


@register_transform("codex")
def transform_codex(server_name: str, config: McpServerConfig) -> dict[str, Any]:
    if config.url:
        result = {"type": config.transport, "url": config.url}
        return _with_optional(result, headers=config.headers)
    result = {"command": config.command, "args": config.args or []}
    return _with_optional(result, env=config.env)


@register_transform("cursor")
def transform_cursor(server_name: str, config: McpServerConfig) -> dict[str, Any]:
    """Cursor infers the transport from the presence of a url."""
    if config.url:
        return _with_optional({"url": config.url}, headers=config.headers)
    return config.to_canonical()


def get_transform(provider: Provider) -> McpTransform:
    """Get the transform declared by a provider.

    Raises:
        ValueError: If the provider names an unregistered transform
    """
    try:
        return TRANSFORMS[provider.mcp_transform]
    except KeyError:
        available = ", ".join(TRANSFORMS) or "none"
        raise ValueError(
            f"Unknown MCP transform: {provider.mcp_transform}. Available transforms: {available}"
        ) from None


def transform_server_config(provider: Provider, server_name: str, config: McpServerConfig) -> Any:
    """Convert a canonical server config into the provider's native entry value."""
    return get_transform(provider)(server_name, config)
