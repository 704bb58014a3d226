"""Global and project scope composition for providers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from caamp.config.schemas import ConfigFormat, McpMutation, Provider, Scope
from caamp.core.batch import BatchResult, install_batch_with_rollback
from caamp.instructions.injector import InjectAction, inject_all, resolve_instruction_path
from caamp.mcp.installer import McpInstallResult
from caamp.mcp.reader import resolve_config_path

logger = logging.getLogger(__name__)


@dataclass
class DualScopeResult:
    """Per-scope outcome of configuring one provider."""

    provider_id: str
    config_paths: dict[Scope, Path | None]
    mcp: dict[Scope, list[McpInstallResult]] = field(default_factory=dict)
    batches: dict[Scope, BatchResult] = field(default_factory=dict)
    instructions: dict[Scope, dict[Path, InjectAction]] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return all(batch.success for batch in self.batches.values())


@dataclass
class InstructionFileAction:
    file: Path
    action: InjectAction
    providers: list[str]
    config_formats: list[ConfigFormat]


@dataclass
class InstructionUpdateSummary:
    scope: Scope
    actions: list[InstructionFileAction] = field(default_factory=list)

    @property
    def updated_files(self) -> int:
        return len(self.actions)


def _in_scope(mutations: list[McpMutation], scope: Scope) -> list[McpMutation]:
    return [m if m.scope == scope else m.model_copy(update={"scope": scope}) for m in mutations]


def configure_provider_global_and_project(
    provider: Provider,
    global_mcp: list[McpMutation] | None = None,
    project_mcp: list[McpMutation] | None = None,
    instruction_content: str | dict[str, str] | None = None,
    project_dir: Path | None = None,
) -> DualScopeResult:
    """Apply global and project MCP entries and instruction blocks for one provider.

    Each scope's MCP entries form their own transactional batch, so a failure
    in one scope rolls back only that scope. Write failures are reported in
    the per-scope results, never raised.

    Args:
        provider: Provider to configure
        global_mcp: Mutations written to the global config (scope is forced)
        project_mcp: Mutations written to the project config (scope is forced)
        instruction_content: One string for both instruction files, or a
            mapping with optional ``global`` and ``project`` keys
        project_dir: Project root (defaults to the working directory)
    """
    project_dir = project_dir or Path.cwd()
    result = DualScopeResult(
        provider_id=provider.id,
        config_paths={
            "global": resolve_config_path(provider, "global", project_dir),
            "project": resolve_config_path(provider, "project", project_dir),
        },
    )

    scoped: dict[Scope, list[McpMutation]] = {
        "global": _in_scope(global_mcp or [], "global"),
        "project": _in_scope(project_mcp or [], "project"),
    }
    for scope, mutations in scoped.items():
        if not mutations:
            continue
        batch = install_batch_with_rollback([provider], mcp=mutations, project_dir=project_dir)
        result.batches[scope] = batch
        result.mcp[scope] = batch.results
        if not batch.success:
            logger.warning("%s %s MCP batch failed: %s", provider.id, scope, batch.error)

    if isinstance(instruction_content, str):
        contents: dict[str, str] = {"global": instruction_content, "project": instruction_content}
    else:
        contents = {k: v for k, v in (instruction_content or {}).items() if v}

    for scope in ("global", "project"):
        if scope in contents:
            result.instructions[scope] = inject_all([provider], project_dir, scope, contents[scope])

    return result


def update_instructions_single_operation(
    providers: list[Provider],
    content: str,
    scope: Scope = "project",
    project_dir: Path | None = None,
) -> InstructionUpdateSummary:
    """Inject ``content`` once per distinct instruction file.

    Each reported file action lists every provider (and config format) that
    reads that file.
    """
    project_dir = project_dir or Path.cwd()
    actions = inject_all(providers, project_dir, scope, content)

    summary = InstructionUpdateSummary(scope=scope)
    for path, action in actions.items():
        sharing = [p for p in providers if resolve_instruction_path(p, scope, project_dir) == path]
        summary.actions.append(
            InstructionFileAction(
                file=path,
                action=action,
                providers=[p.id for p in sharing],
                config_formats=list(dict.fromkeys(p.config_format for p in sharing)),
            )
        )
        logger.debug("%s %s for %s", action.capitalize(), path, ", ".join(p.id for p in sharing))
    return summary
