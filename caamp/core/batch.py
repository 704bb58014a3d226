"""All-or-nothing MCP installation across providers.

A batch snapshots every config file it may touch, applies each
(mutation, provider) write in order and, on the first failure, restores every
snapshot so that no provider is left partially configured.
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path

from caamp.config.schemas import SCOPES, McpMutation, Provider
from caamp.core.conflicts import ConflictRecord, detect_mcp_config_conflicts
from caamp.core.policy import SkippedMutation, group_conflicts, skip_all, validate_policy
from caamp.core.selector import select_providers_by_minimum_priority, validate_priority
from caamp.mcp.installer import McpInstallResult, install_mcp_server
from caamp.mcp.reader import resolve_config_path
from caamp.utils.filesystem import read_bytes_if_exists

logger = logging.getLogger(__name__)


class BatchValidationError(ValueError):
    """A batch request was rejected before any file was read or written."""


@dataclass
class Snapshot:
    """Pre-batch state of one config file.

    ``content`` and ``mode`` are None when the file did not exist.
    ``created_dirs`` lists the missing ancestor directories (deepest first) so
    a create-then-fail sequence leaves no empty directories behind.
    """

    path: Path
    content: bytes | None
    mode: int | None = None
    created_dirs: list[Path] = field(default_factory=list)

    @classmethod
    def capture(cls, path: Path) -> Snapshot:
        missing: list[Path] = []
        parent = path.parent
        while not parent.exists() and parent != parent.parent:
            missing.append(parent)
            parent = parent.parent
        content = read_bytes_if_exists(path)
        mode = stat.S_IMODE(path.stat().st_mode) if content is not None else None
        return cls(path=path, content=content, mode=mode, created_dirs=missing)

    def restore(self) -> None:
        """Put the file back exactly as captured. Unchanged files are not rewritten."""
        current = read_bytes_if_exists(self.path)

        if self.content is None:
            if current is not None:
                self.path.unlink()
            for directory in self.created_dirs:
                if directory.is_dir() and not any(directory.iterdir()):
                    directory.rmdir()
            return

        if current != self.content:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(self.content)
        if self.mode is not None and stat.S_IMODE(self.path.stat().st_mode) != self.mode:
            os.chmod(self.path, self.mode)


@dataclass
class BatchResult:
    """Outcome of one transactional batch."""

    success: bool
    provider_ids: list[str] = field(default_factory=list)
    mcp_applied: int = 0
    rollback_performed: bool = False
    results: list[McpInstallResult] = field(default_factory=list)
    conflicts: list[ConflictRecord] = field(default_factory=list)
    skipped: list[SkippedMutation] = field(default_factory=list)
    rollback_errors: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)


def validate_batch(mutations: list[McpMutation], minimum_priority: str, policy: str | None) -> None:
    """Reject malformed batch input.

    Raises:
        BatchValidationError: On an empty mutation list, unknown scope,
            priority or policy
    """
    if not mutations:
        raise BatchValidationError("Batch must contain at least one MCP mutation")
    for mutation in mutations:
        if mutation.scope not in SCOPES:
            raise BatchValidationError(f"Unknown scope '{mutation.scope}' for '{mutation.server_name}'")
    try:
        validate_priority(minimum_priority)
        if policy is not None:
            validate_policy(policy)
    except ValueError as e:
        raise BatchValidationError(str(e)) from e


def capture_snapshots(paths: list[Path]) -> dict[Path, Snapshot]:
    """Snapshot each distinct path once, in first-seen order."""
    snapshots: dict[Path, Snapshot] = {}
    for path in paths:
        if path not in snapshots:
            snapshots[path] = Snapshot.capture(path)
    return snapshots


def restore_snapshots(snapshots: dict[Path, Snapshot]) -> list[str]:
    """Restore every snapshot, newest first. Returns one message per failed restore."""
    errors: list[str] = []
    for snapshot in reversed(list(snapshots.values())):
        try:
            snapshot.restore()
            logger.debug("Restored %s", snapshot.path)
        except OSError as e:
            errors.append(f"Failed to restore {snapshot.path}: {e}")
    return errors


def install_batch_with_rollback(
    providers: list[Provider],
    minimum_priority: str = "low",
    mcp: list[McpMutation] | None = None,
    project_dir: Path | None = None,
    policy: str | None = None,
) -> BatchResult:
    """Apply MCP mutations to the selected providers as one transaction.

    Mutations apply in order, each to every selected provider (highest
    priority first). The first failed write, or a provider with no config
    path for a mutation's scope, stops the batch and every touched file is
    restored to its pre-batch bytes.

    When ``policy`` is given, conflicts are detected first: ``fail`` aborts
    before writing, ``skip`` drops conflicting pairs, ``overwrite`` keeps them.

    Raises:
        BatchValidationError: If the request is malformed (before any I/O)
    """
    mutations = list(mcp or [])
    validate_batch(mutations, minimum_priority, policy)

    project_dir = project_dir or Path.cwd()
    selected = select_providers_by_minimum_priority(providers, minimum_priority)
    result = BatchResult(success=True, provider_ids=[p.id for p in selected])

    pairs = [
        (mutation, provider, resolve_config_path(provider, mutation.scope, project_dir))
        for mutation in mutations
        for provider in selected
    ]
    unresolved = [(m.server_name, p.id) for m, p, path in pairs if path is None]
    if unresolved:
        logger.debug("Unresolvable config paths: %s", unresolved)

    try:
        snapshots = capture_snapshots([path for _, _, path in pairs if path is not None])
    except OSError as e:
        snapshots = {}
        result.error = f"Failed to snapshot {e.filename or 'config file'}: {e.strerror or e}"
    logger.info(
        "Batch: %d mutation(s) across %d provider(s), %d file(s) snapshotted",
        len(mutations),
        len(selected),
        len(snapshots),
    )

    if policy is not None and result.error is None:
        result.conflicts = detect_mcp_config_conflicts(selected, mutations, project_dir)
        if policy == "fail" and result.conflicts:
            result.skipped = skip_all(selected, mutations, result.conflicts)
            result.error = f"{len(result.conflicts)} conflict(s) detected under 'fail' policy"
        elif policy == "skip" and result.conflicts:
            grouped = group_conflicts(result.conflicts)
            kept = []
            for mutation, provider, path in pairs:
                own = grouped.get((provider.id, mutation.server_name, mutation.scope))
                if own:
                    result.skipped.append(
                        SkippedMutation(provider.id, mutation.server_name, mutation.scope, own[0].code, own)
                    )
                else:
                    kept.append((mutation, provider, path))
            pairs = kept

    if result.error is None:
        for mutation, provider, _path in pairs:
            outcome = install_mcp_server(provider, mutation.server_name, mutation.config, mutation.scope, project_dir)
            result.results.append(outcome)
            if not outcome.success:
                result.error = outcome.error or f"Failed MCP install for {provider.id}"
                break
            result.mcp_applied += 1

    if result.error is not None:
        result.success = False
        result.rollback_performed = True
        result.rollback_errors = restore_snapshots(snapshots)
        logger.warning("Batch failed (%s); rolled back %d file(s)", result.error, len(snapshots))
        for message in result.rollback_errors:
            logger.error(message)
    else:
        logger.info("Batch applied %d write(s)", result.mcp_applied)

    return result
