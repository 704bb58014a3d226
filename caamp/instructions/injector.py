"""Marker-based injection into agent instruction files.

caamp owns one block per instruction file (CLAUDE.md, AGENTS.md, ...),
wrapped in HTML comment markers so it can be updated or removed without
touching user content:

    <!-- CAAMP:START -->
    ... managed content ...
    <!-- CAAMP:END -->
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from caamp.config.schemas import Provider, Scope
from caamp.utils.filesystem import read_text_file, remove_file, write_text_file

logger = logging.getLogger(__name__)

MARKER_START = "<!-- CAAMP:START -->"
MARKER_END = "<!-- CAAMP:END -->"

InjectAction = Literal["created", "added", "updated"]
InjectionStatus = Literal["current", "outdated", "missing", "none"]


@dataclass
class InjectionBlock:
    """Location of the managed block within a file."""

    content: str
    start_pos: int
    end_pos: int


@dataclass
class InjectionCheckResult:
    file: Path
    provider_id: str
    status: InjectionStatus
    file_exists: bool


def wrap_content(content: str) -> str:
    """Wrap content in the caamp markers."""
    return f"{MARKER_START}\n{content}\n{MARKER_END}"


def find_block(file_content: str) -> InjectionBlock | None:
    """Find the managed block in file content.

    Returns:
        InjectionBlock if both markers are present in order, None otherwise
    """
    start_pos = file_content.find(MARKER_START)
    if start_pos == -1:
        return None

    end_pos = file_content.find(MARKER_END, start_pos)
    if end_pos == -1:
        return None
    end_pos += len(MARKER_END)

    inner = file_content[start_pos + len(MARKER_START) : end_pos - len(MARKER_END)].strip()
    return InjectionBlock(content=inner, start_pos=start_pos, end_pos=end_pos)


def inject(path: Path, content: str) -> InjectAction:
    """Write the managed block into an instruction file.

    A missing file is created with just the block; a file without markers
    gets the block prepended; an existing block is replaced in place.
    """
    block = wrap_content(content)

    if not path.exists():
        write_text_file(path, block + "\n")
        logger.debug("Created %s with injection block", path)
        return "created"

    existing = read_text_file(path)
    section = find_block(existing)
    if section is not None:
        write_text_file(path, existing[: section.start_pos] + block + existing[section.end_pos :])
        logger.debug("Updated injection block in %s", path)
        return "updated"

    write_text_file(path, block + "\n\n" + existing)
    logger.debug("Added injection block to %s", path)
    return "added"


def check_injection(path: Path, expected_content: str | None = None) -> InjectionStatus:
    """Report whether a file carries the managed block and whether it is current."""
    if not path.exists():
        return "missing"

    section = find_block(read_text_file(path))
    if section is None:
        return "none"
    if expected_content is not None and section.content != expected_content.strip():
        return "outdated"
    return "current"


def remove_injection(path: Path) -> bool:
    """Remove the managed block. A file left empty is deleted.

    Returns:
        True if a block was removed
    """
    if not path.exists():
        return False

    existing = read_text_file(path)
    section = find_block(existing)
    if section is None:
        return False

    cleaned = (existing[: section.start_pos] + existing[section.end_pos :]).strip()
    if not cleaned:
        remove_file(path)
    else:
        write_text_file(path, cleaned + "\n")
    return True


def resolve_instruction_path(provider: Provider, scope: Scope, project_dir: Path | None = None) -> Path:
    """Instruction file for a provider: its global directory or the project root."""
    if scope == "global":
        return provider.path_global / provider.instruct_file
    return (project_dir or Path.cwd()) / provider.instruct_file


def inject_all(
    providers: list[Provider], project_dir: Path | None, scope: Scope, content: str
) -> dict[Path, InjectAction]:
    """Inject into every provider's instruction file, once per distinct file."""
    results: dict[Path, InjectAction] = {}
    for provider in providers:
        path = resolve_instruction_path(provider, scope, project_dir)
        if path in results:
            continue
        results[path] = inject(path, content)
    return results


def check_all_injections(
    providers: list[Provider],
    project_dir: Path | None,
    scope: Scope,
    expected_content: str | None = None,
) -> list[InjectionCheckResult]:
    """Check each distinct instruction file once, attributed to its first provider."""
    results: list[InjectionCheckResult] = []
    checked: set[Path] = set()
    for provider in providers:
        path = resolve_instruction_path(provider, scope, project_dir)
        if path in checked:
            continue
        checked.add(path)
        results.append(
            InjectionCheckResult(
                file=path,
                provider_id=provider.id,
                status=check_injection(path, expected_content),
                file_exists=path.exists(),
            )
        )
    return results
