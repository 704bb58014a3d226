"""Pydantic schemas for caamp.

This module defines the data models for:
- providers.json (provider registry entries)
- canonical MCP server configuration and batch mutations
- .caamp-lock.json (lock-state file)
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# =============================================================================
# Common Types
# =============================================================================

ConfigFormat = Literal["json", "jsonc", "yaml", "toml"]
TransportType = Literal["stdio", "sse", "http"]
ProviderPriority = Literal["high", "medium", "low"]
ProviderStatus = Literal["active", "beta", "deprecated", "planned"]
Scope = Literal["global", "project"]
ConflictPolicy = Literal["fail", "skip", "overwrite"]
ConflictCode = Literal["unsupported-transport", "unsupported-headers", "existing-mismatch"]
SourceType = Literal["remote", "package", "command", "github", "gitlab", "local"]

CONFIG_FORMATS: tuple[str, ...] = ("json", "jsonc", "yaml", "toml")
SCOPES: tuple[str, ...] = ("global", "project")
CONFLICT_POLICIES: tuple[str, ...] = ("fail", "skip", "overwrite")


# =============================================================================
# Provider
# =============================================================================


class Provider(BaseModel):
    """A resolved AI agent provider definition.

    Registry entries use camelCase keys (``configPathGlobal``); path templates
    are expanded by the registry before validation, so ``path_global`` and
    ``config_path_global`` are absolute. ``config_path_project`` stays
    project-relative and is ``None`` when the provider has no project config.
    """

    model_config = {"frozen": True, "populate_by_name": True, "alias_generator": to_camel}

    id: str
    tool_name: str
    vendor: str = ""
    aliases: tuple[str, ...] = ()

    path_global: Path
    path_project: str = "."
    instruct_file: str

    config_key: str
    config_format: ConfigFormat
    config_path_global: Path
    config_path_project: str | None = None

    supported_transports: tuple[TransportType, ...] = ("stdio",)
    supports_headers: bool = False

    priority: ProviderPriority = "low"
    status: ProviderStatus = "active"
    mcp_transform: str = "passthrough"

    @field_validator("config_key")
    @classmethod
    def validate_config_key(cls, v: str) -> str:
        """Reject empty key paths and empty path segments."""
        if not v or any(not part for part in v.split(".")):
            raise ValueError(f"Invalid config key path: {v!r}")
        return v


# =============================================================================
# MCP Server Models
# =============================================================================


class McpServerConfig(BaseModel):
    """Canonical MCP server configuration.

    Three shapes are supported:
    - remote: ``{type, url, headers?}``
    - package launch: ``{command: "npx", args: ["-y", package]}``
    - raw command: ``{command, args}``

    Provider-specific shapes are produced from this by the transforms in
    :mod:`caamp.mcp.transforms`.
    """

    type: TransportType | None = None
    url: str | None = None
    headers: dict[str, str] | None = None
    command: str | None = None
    args: list[str] | None = None
    env: dict[str, str] | None = None

    @model_validator(mode="after")
    def validate_shape(self) -> "McpServerConfig":
        """A server is either remote (url) or local (command), never neither."""
        if not self.url and not self.command:
            raise ValueError("MCP server config must specify 'url' or 'command'")
        if self.url and self.type == "stdio":
            raise ValueError("Remote MCP servers cannot use the stdio transport")
        return self

    @property
    def transport(self) -> TransportType:
        """The effective transport: explicit type, else http for urls, else stdio."""
        if self.type is not None:
            return self.type
        return "http" if self.url else "stdio"

    @property
    def is_remote(self) -> bool:
        return bool(self.url)

    def to_canonical(self) -> dict[str, Any]:
        """Serialize to the canonical dict written for passthrough providers."""
        return self.model_dump(exclude_none=True)


class McpMutation(BaseModel):
    """A requested MCP server entry change for one scope."""

    server_name: str
    config: McpServerConfig
    scope: Scope = "project"

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        """Server names are dictionary keys and must not be blank."""
        if not v.strip():
            raise ValueError("Server name cannot be empty")
        return v


# =============================================================================
# Lock File (.caamp-lock.json)
# =============================================================================


class LockEntry(BaseModel):
    """A single entry in the lock file tracking an installed skill or MCP server.

    Keys written by other caamp versions are kept as extras, and an unknown
    ``sourceType`` is carried through as a plain string.
    """

    model_config = {"populate_by_name": True, "alias_generator": to_camel, "extra": "allow"}

    name: str = ""
    scoped_name: str = ""
    source: str = ""
    source_type: SourceType | str = "local"
    version: str | None = None
    installed_at: str = ""
    updated_at: str | None = None
    agents: list[str] = Field(default_factory=list)
    canonical_path: str = ""
    is_global: bool = False
    project_dir: str | None = None


class LockFile(BaseModel):
    """Lock file schema, shared by MCP servers and skills."""

    model_config = {"populate_by_name": True, "alias_generator": to_camel, "extra": "allow"}

    version: Literal[1] = 1
    skills: dict[str, LockEntry] = Field(default_factory=dict)
    mcp_servers: dict[str, LockEntry] = Field(default_factory=dict)
    last_selected_agents: list[str] | None = None

    def to_json_dict(self) -> dict[str, Any]:
        """Dump using the camelCase wire names, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)
