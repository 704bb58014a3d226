"""Filesystem utilities for caamp."""

import contextlib
import os
import stat
import tempfile
from pathlib import Path


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists

    Returns:
        The directory path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def ensure_parent(path: Path) -> Path:
    """Ensure the parent directory of a file path exists."""
    return ensure_directory(path.parent)


def remove_file(path: Path) -> bool:
    """Remove a file.

    Args:
        path: File path to remove

    Returns:
        True if the file was removed, False if it didn't exist
    """
    if not path.exists():
        return False
    path.unlink()
    return True


def read_text_file(path: Path) -> str:
    """Read a text file.

    Args:
        path: Path to the file

    Returns:
        File contents as a string
    """
    return path.read_text(encoding="utf-8")


def read_bytes_if_exists(path: Path) -> bytes | None:
    """Read a file's raw bytes, or None if it does not exist."""
    if not path.exists():
        return None
    return path.read_bytes()


def write_text_file(path: Path, content: str) -> None:
    """Write content to a text file.

    Args:
        path: Path to the file
        content: Content to write
    """
    ensure_parent(path)
    path.write_text(content, encoding="utf-8")


def atomic_write_text(path: Path, content: str) -> None:
    """Write text through a uniquely named sibling temp file and rename it into place.

    Readers only ever observe the previous or the new complete content. An
    existing destination keeps its permission bits.

    Args:
        path: Destination path
        content: Content to write
    """
    ensure_parent(path)
    fd, tmp_name = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f"{path.name}.tmp-{os.getpid()}-",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        if path.exists():
            os.chmod(tmp_name, stat.S_IMODE(path.stat().st_mode))
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise

