"""Lock-state store for caamp.

The lock file (``$AGENTS_HOME/.caamp-lock.json``) records which MCP servers
and skills caamp installed and for which agents. It is shared by every caamp
process on the machine, so each read-modify-write cycle holds an exclusive
guard: a sibling ``.lock`` marker created with ``O_CREAT | O_EXCL``.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import time
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from caamp.config.schemas import LockEntry, LockFile, SourceType
from caamp.config.settings import CaampSettings
from caamp.utils.filesystem import atomic_write_text, ensure_parent

logger = logging.getLogger(__name__)


class LockError(Exception):
    """Error acquiring or using the lock-state guard."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


class LockTimeoutError(LockError):
    """The guard stayed held by another process for every retry."""

    def __init__(self, path: Path, attempts: int):
        self.attempts = attempts
        super().__init__(f"Timed out waiting for lock file guard {path} after {attempts} attempts", path)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LockStateStore:
    """Guarded access to the shared lock-state file.

    Args:
        lock_path: Path of the lock-state JSON file
        retries: Guard acquisition attempts before giving up
        delay: Seconds to wait between attempts
    """

    def __init__(self, lock_path: Path, retries: int = 40, delay: float = 0.025):
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self.lock_path = lock_path
        self.guard_path = lock_path.with_name(lock_path.name + ".lock")
        self.retries = retries
        self.delay = delay

    @classmethod
    def from_settings(cls, settings: CaampSettings) -> LockStateStore:
        return cls(settings.lock_file_path, retries=settings.lock_retries, delay=settings.lock_delay)

    # =========================================================================
    # Guard
    # =========================================================================

    def _acquire(self) -> None:
        ensure_parent(self.guard_path)
        for attempt in range(self.retries):
            try:
                fd = os.open(self.guard_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if attempt < self.retries - 1:
                    time.sleep(self.delay)
                continue
            try:
                os.write(fd, str(os.getpid()).encode("utf-8"))
            finally:
                os.close(fd)
            return
        raise LockTimeoutError(self.guard_path, self.retries)

    def _release(self) -> None:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(self.guard_path)

    @contextlib.contextmanager
    def guard(self) -> Iterator[None]:
        """Hold the exclusive guard for the duration of the block."""
        self._acquire()
        try:
            yield
        finally:
            self._release()

    # =========================================================================
    # Read / write
    # =========================================================================

    def _load(self) -> LockFile:
        """Read the lock file for a read-modify-write cycle.

        Unparsable JSON reads as an empty lock. Well-formed JSON that does not
        validate raises LockError so its entries are never overwritten.
        """
        if not self.lock_path.exists():
            return LockFile()
        try:
            data = json.loads(self.lock_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable lock file %s: %s", self.lock_path, e)
            return LockFile()
        try:
            return LockFile.model_validate(data)
        except ValidationError as e:
            message = f"Lock file {self.lock_path} does not match the expected schema: {e}"
            raise LockError(message, self.lock_path) from e

    def read(self) -> LockFile:
        """Read the lock file. Missing, unparsable or invalid files read as an empty lock."""
        try:
            return self._load()
        except LockError as e:
            logger.warning("%s", e)
            return LockFile()

    def _write_unguarded(self, lock: LockFile) -> None:
        content = json.dumps(lock.to_json_dict(), indent=2) + "\n"
        atomic_write_text(self.lock_path, content)

    def write(self, lock: LockFile) -> None:
        """Overwrite the lock file while holding the guard."""
        with self.guard():
            self._write_unguarded(lock)

    def update(self, mutator: Callable[[LockFile], object]) -> LockFile:
        """Apply ``mutator`` to the current lock state and persist the result.

        The guard is held across read, mutate and write. If the mutator
        raises, nothing is written and the exception propagates.

        Raises:
            LockError: If the existing lock file does not validate
        """
        with self.guard():
            lock = self._load()
            mutator(lock)
            self._write_unguarded(lock)
        return lock

    # =========================================================================
    # MCP servers
    # =========================================================================

    def record_mcp_install(
        self,
        server_name: str,
        source: str,
        source_type: SourceType,
        agents: list[str],
        is_global: bool,
        project_dir: str | None = None,
    ) -> LockEntry:
        """Record (or refresh) an installed MCP server."""

        def mutate(lock: LockFile) -> None:
            entry = _merge_entry(
                lock.mcp_servers.get(server_name),
                name=server_name,
                source=source,
                source_type=source_type,
                agents=agents,
                is_global=is_global,
                project_dir=project_dir,
            )
            lock.mcp_servers[server_name] = entry

        lock = self.update(mutate)
        logger.debug("Recorded MCP server '%s' for %s", server_name, ", ".join(agents))
        return lock.mcp_servers[server_name]

    def remove_mcp_from_lock(self, server_name: str) -> bool:
        """Remove an MCP server entry. Returns True if it was tracked."""
        removed: list[bool] = []

        def mutate(lock: LockFile) -> None:
            removed.append(lock.mcp_servers.pop(server_name, None) is not None)

        self.update(mutate)
        return removed[0]

    def get_tracked_mcp_servers(self) -> dict[str, LockEntry]:
        return self.read().mcp_servers

    # =========================================================================
    # Skills
    # =========================================================================

    def record_skill_install(
        self,
        skill_name: str,
        scoped_name: str,
        source: str,
        source_type: SourceType,
        agents: list[str],
        canonical_path: str,
        is_global: bool,
        project_dir: str | None = None,
        version: str | None = None,
    ) -> LockEntry:
        """Record (or refresh) an installed skill."""

        def mutate(lock: LockFile) -> None:
            entry = _merge_entry(
                lock.skills.get(skill_name),
                name=skill_name,
                scoped_name=scoped_name,
                source=source,
                source_type=source_type,
                agents=agents,
                canonical_path=canonical_path,
                is_global=is_global,
                project_dir=project_dir,
                version=version,
            )
            lock.skills[skill_name] = entry

        lock = self.update(mutate)
        return lock.skills[skill_name]

    def remove_skill_from_lock(self, skill_name: str) -> bool:
        removed: list[bool] = []

        def mutate(lock: LockFile) -> None:
            removed.append(lock.skills.pop(skill_name, None) is not None)

        self.update(mutate)
        return removed[0]

    def get_tracked_skills(self) -> dict[str, LockEntry]:
        return self.read().skills

    # =========================================================================
    # Agent selection
    # =========================================================================

    def save_last_selected_agents(self, agents: list[str]) -> None:
        def mutate(lock: LockFile) -> None:
            lock.last_selected_agents = list(agents)

        self.update(mutate)

    def get_last_selected_agents(self) -> list[str] | None:
        return self.read().last_selected_agents


def _merge_entry(
    existing: LockEntry | None,
    *,
    name: str,
    source: str,
    source_type: SourceType,
    agents: list[str],
    is_global: bool,
    scoped_name: str | None = None,
    canonical_path: str = "",
    project_dir: str | None = None,
    version: str | None = None,
) -> LockEntry:
    now = _now()
    previous_agents = existing.agents if existing else []
    return LockEntry(
        name=name,
        scoped_name=scoped_name or name,
        source=source,
        source_type=source_type,
        version=version,
        installed_at=existing.installed_at if existing else now,
        updated_at=now,
        agents=list(dict.fromkeys([*previous_agents, *agents])),
        canonical_path=canonical_path,
        is_global=is_global,
        project_dir=project_dir,
    )
