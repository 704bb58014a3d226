"""Platform and OS detection utilities."""

import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

PlatformOS = Literal["windows", "linux", "macos"]


def get_os() -> PlatformOS:
    """Get the current operating system.

    Returns:
        One of: "windows", "linux", "macos"
    """
    system = platform.system().lower()
    if system == "darwin":
        return "macos"
    elif system == "windows":
        return "windows"
    else:
        return "linux"


def get_home_directory() -> str:
    """Get the user's home directory.

    Returns:
        Path to the home directory
    """
    return os.path.expanduser("~")


def get_env(name: str, default: str | None = None) -> str | None:
    """Get an environment variable.

    Args:
        name: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(name, default)


@dataclass(frozen=True)
class PlatformLocations:
    """Well-known per-OS configuration directories."""

    home: Path
    config: Path
    vscode_config: Path
    zed_config: Path
    claude_desktop_config: Path


def get_platform_locations() -> PlatformLocations:
    """Resolve the configuration directories used by provider path templates."""
    home = Path(get_home_directory())
    current = get_os()

    if current == "windows":
        app_data = Path(get_env("APPDATA") or home / "AppData" / "Roaming")
        return PlatformLocations(
            home=home,
            config=app_data,
            vscode_config=app_data / "Code" / "User",
            zed_config=app_data / "Zed",
            claude_desktop_config=app_data / "Claude",
        )

    config = Path(get_env("XDG_CONFIG_HOME") or home / ".config")
    if current == "macos":
        support = home / "Library" / "Application Support"
        return PlatformLocations(
            home=home,
            config=config,
            vscode_config=support / "Code" / "User",
            zed_config=support / "Zed",
            claude_desktop_config=support / "Claude",
        )

    return PlatformLocations(
        home=home,
        config=config,
        vscode_config=config / "Code" / "User",
        zed_config=config / "zed",
        claude_desktop_config=config / "Claude",
    )


def normalize_home_override(value: str) -> Path:
    """Normalize an ``AGENTS_HOME`` style override.

    ``~`` and ``~/...`` expand against the home directory, relative paths are
    taken relative to the home directory, absolute paths are resolved.
    """
    home = Path(get_home_directory())
    trimmed = value.strip()
    if trimmed == "~":
        return home
    if trimmed.startswith("~/"):
        return home / trimmed[2:]
    candidate = Path(trimmed)
    if candidate.is_absolute():
        return candidate.resolve()
    return (home / candidate).resolve()


def get_agents_home() -> Path:
    """Get the global ``.agents`` directory (``$AGENTS_HOME`` or ``~/.agents``)."""
    override = get_env("AGENTS_HOME")
    if override and override.strip():
        return normalize_home_override(override)
    return Path(get_home_directory()) / ".agents"
