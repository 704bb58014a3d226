"""Policy-driven application of MCP server writes.

Policies:
- ``fail``: any conflict aborts the whole plan before writing
- ``skip``: conflicting writes are skipped, the rest are applied
- ``overwrite``: everything is applied; conflicts are only reported
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from caamp.config.schemas import CONFLICT_POLICIES, ConflictCode, ConflictPolicy, McpMutation, Provider, Scope
from caamp.core.conflicts import ConflictRecord, detect_mcp_config_conflicts
from caamp.mcp.installer import McpInstallResult, install_mcp_server

logger = logging.getLogger(__name__)


@dataclass
class SkippedMutation:
    """A (provider, mutation) pair that was not written."""

    provider_id: str
    server_name: str
    scope: Scope
    reason: ConflictCode
    conflicts: list[ConflictRecord] = field(default_factory=list)


@dataclass
class PolicyApplyResult:
    conflicts: list[ConflictRecord] = field(default_factory=list)
    applied: list[McpInstallResult] = field(default_factory=list)
    skipped: list[SkippedMutation] = field(default_factory=list)


def validate_policy(policy: str) -> ConflictPolicy:
    """Return ``policy`` unchanged, or raise ValueError for an unknown policy."""
    if policy not in CONFLICT_POLICIES:
        valid = ", ".join(CONFLICT_POLICIES)
        raise ValueError(f"Invalid conflict policy '{policy}'. Expected one of: {valid}")
    return policy  # type: ignore[return-value]


def group_conflicts(conflicts: list[ConflictRecord]) -> dict[tuple[str, str, Scope], list[ConflictRecord]]:
    """Index conflicts by (provider id, server name, scope)."""
    grouped: dict[tuple[str, str, Scope], list[ConflictRecord]] = {}
    for conflict in conflicts:
        grouped.setdefault(conflict.key, []).append(conflict)
    return grouped


def skip_all(
    providers: list[Provider], mutations: list[McpMutation], conflicts: list[ConflictRecord]
) -> list[SkippedMutation]:
    """Mark every pair skipped, as the ``fail`` policy does when any conflict exists.

    Pairs without conflicts of their own carry the code of the first conflict.
    """
    grouped = group_conflicts(conflicts)
    skipped = []
    for provider in providers:
        for mutation in mutations:
            own = grouped.get((provider.id, mutation.server_name, mutation.scope), [])
            reason = own[0].code if own else conflicts[0].code
            skipped.append(
                SkippedMutation(provider.id, mutation.server_name, mutation.scope, reason, list(own))
            )
    return skipped


def apply_mcp_install_with_policy(
    providers: list[Provider],
    mutations: list[McpMutation],
    policy: str = "fail",
    project_dir: Path | None = None,
) -> PolicyApplyResult:
    """Detect conflicts once, then write according to ``policy``.

    Raises:
        ValueError: If ``policy`` is unknown (before any I/O)
    """
    validate_policy(policy)
    conflicts = detect_mcp_config_conflicts(providers, mutations, project_dir)

    if policy == "fail" and conflicts:
        logger.info("Aborting: %d conflict(s) under 'fail' policy", len(conflicts))
        return PolicyApplyResult(conflicts=conflicts, skipped=skip_all(providers, mutations, conflicts))

    grouped = group_conflicts(conflicts)
    result = PolicyApplyResult(conflicts=conflicts)

    for provider in providers:
        for mutation in mutations:
            own = grouped.get((provider.id, mutation.server_name, mutation.scope))
            if policy == "skip" and own:
                result.skipped.append(
                    SkippedMutation(provider.id, mutation.server_name, mutation.scope, own[0].code, own)
                )
                continue
            result.applied.append(
                install_mcp_server(provider, mutation.server_name, mutation.config, mutation.scope, project_dir)
            )

    logger.info("Applied %d, skipped %d (policy: %s)", len(result.applied), len(result.skipped), policy)
    return result
