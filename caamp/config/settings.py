"""User-level settings for caamp.

Settings are read from ``$AGENTS_HOME/config.toml`` (the ``[caamp]`` table)
when that file exists, otherwise defaults apply. ``AGENTS_HOME`` itself comes
from the environment.

Example config.toml:

    [caamp]
    lock_retries = 80
    lock_delay = 0.05
    default_policy = "skip"
    default_minimum_priority = "medium"
"""

import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from caamp.config.parser import ConfigError, load_toml
from caamp.config.schemas import ConflictPolicy, ProviderPriority
from caamp.utils.platform import get_agents_home

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".caamp-lock.json"
SETTINGS_FILE_NAME = "config.toml"


class CaampSettings(BaseModel):
    """Tunable parameters for the lock guard and orchestration defaults."""

    agents_home: Path = Field(default_factory=get_agents_home)
    lock_retries: int = Field(default=40, ge=1)
    lock_delay: float = Field(default=0.025, ge=0)
    default_policy: ConflictPolicy = "fail"
    default_minimum_priority: ProviderPriority = "low"

    @property
    def lock_file_path(self) -> Path:
        """Path of the shared lock-state file."""
        return self.agents_home / LOCK_FILE_NAME


def load_settings(agents_home: Path | None = None) -> CaampSettings:
    """Load settings from ``<agents_home>/config.toml``.

    Args:
        agents_home: Override for the agents home directory (defaults to
            ``$AGENTS_HOME`` or ``~/.agents``)

    Returns:
        Parsed settings, or defaults if no settings file exists

    Raises:
        ConfigError: If the settings file exists but is invalid
    """
    home = agents_home if agents_home is not None else get_agents_home()
    settings_path = home / SETTINGS_FILE_NAME

    data: dict = {}
    if settings_path.exists():
        raw = load_toml(settings_path)
        section = raw.get("caamp", {})
        if not isinstance(section, dict):
            raise ConfigError(f"[caamp] must be a table in {settings_path}", settings_path)
        data = dict(section)
        logger.debug("Loaded settings from %s", settings_path)

    data["agents_home"] = home
    try:
        return CaampSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}", settings_path) from e
