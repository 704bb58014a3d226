"""Read-only conflict detection for planned MCP server writes.

Findings are advisory: the policy executor and batch installer decide
whether a conflict blocks, skips or is overwritten.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from caamp.config.parser import ConfigError
from caamp.config.schemas import ConflictCode, McpMutation, Provider, Scope
from caamp.mcp.reader import read_server_entries, resolve_config_path
from caamp.mcp.transforms import transform_server_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConflictRecord:
    """One reason a planned (provider, mutation) write is problematic."""

    provider_id: str
    server_name: str
    scope: Scope
    code: ConflictCode
    detail: str

    @property
    def key(self) -> tuple[str, str, Scope]:
        return (self.provider_id, self.server_name, self.scope)


def stable_dumps(value: Any) -> str:
    """Serialize with sorted keys so equal structures compare equal as text."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def _existing_entries(
    provider: Provider, config_path: Path, cache: dict[tuple[Path, str, str], dict[str, Any]]
) -> dict[str, Any]:
    cache_key = (config_path, provider.config_format, provider.config_key)
    if cache_key not in cache:
        try:
            cache[cache_key] = read_server_entries(provider, config_path)
        except ConfigError as e:
            logger.debug("Treating unreadable %s as empty: %s", config_path, e)
            cache[cache_key] = {}
    return cache[cache_key]


def detect_mcp_config_conflicts(
    providers: list[Provider],
    mutations: list[McpMutation],
    project_dir: Path | None = None,
) -> list[ConflictRecord]:
    """Find capability and existing-entry conflicts for every provider and mutation.

    Pairs whose provider has no config path for the mutation's scope are not
    inspected. Never writes.
    """
    conflicts: list[ConflictRecord] = []
    cache: dict[tuple[Path, str, str], dict[str, Any]] = {}

    for provider in providers:
        for mutation in mutations:
            name, scope = mutation.server_name, mutation.scope
            config_path = resolve_config_path(provider, scope, project_dir)
            if config_path is None:
                continue

            transport = mutation.config.transport
            if transport not in provider.supported_transports:
                detail = f"{provider.id} does not support transport {transport}"
                conflicts.append(ConflictRecord(provider.id, name, scope, "unsupported-transport", detail))

            if mutation.config.headers and not provider.supports_headers:
                detail = f"{provider.id} does not support header configuration"
                conflicts.append(ConflictRecord(provider.id, name, scope, "unsupported-headers", detail))

            existing = _existing_entries(provider, config_path, cache)
            if name not in existing:
                continue

            desired = transform_server_config(provider, name, mutation.config)
            if stable_dumps(existing[name]) != stable_dumps(desired):
                detail = f"{provider.id} has existing config mismatch for {name}"
                conflicts.append(ConflictRecord(provider.id, name, scope, "existing-mismatch", detail))

    if conflicts:
        logger.info("Detected %d conflict(s)", len(conflicts))
    return conflicts
