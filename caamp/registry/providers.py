"""Provider registry.

Loads provider definitions from ``providers.json`` (bundled with the package
or supplied explicitly) and resolves platform-specific path templates:

    $HOME, $CONFIG, $VSCODE_CONFIG, $ZED_CONFIG, $CLAUDE_DESKTOP_CONFIG, $AGENTS_HOME
"""

from __future__ import annotations

import json
import logging
import re
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from caamp.config.schemas import Provider, ProviderPriority, ProviderStatus
from caamp.mcp.transforms import TRANSFORMS
from caamp.utils.platform import PlatformLocations, get_agents_home, get_platform_locations

logger = logging.getLogger(__name__)

_TEMPLATE_VAR = re.compile(r"\$([A-Z_]+)")
_PATH_FIELDS = ("pathGlobal", "configPathGlobal")


class RegistryError(Exception):
    """Error loading or validating the provider registry."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


def _bundled_registry_text() -> str:
    return resources.files("caamp.registry").joinpath("providers.json").read_text(encoding="utf-8")


class ProviderRegistry:
    """Lazily loaded, cached view of the provider definitions.

    Args:
        registry_path: Registry file to load instead of the bundled one
        locations: Platform directories used for template expansion
        agents_home: Value for ``$AGENTS_HOME`` (defaults to the environment)
    """

    def __init__(
        self,
        registry_path: Path | None = None,
        locations: PlatformLocations | None = None,
        agents_home: Path | None = None,
    ):
        self.registry_path = registry_path
        self._locations = locations
        self._agents_home = agents_home
        self._version: str | None = None
        self._providers: dict[str, Provider] | None = None
        self._aliases: dict[str, str] = {}

    # =========================================================================
    # Loading
    # =========================================================================

    def reset(self) -> None:
        """Drop cached data; the next query reloads the registry."""
        self._version = None
        self._providers = None
        self._aliases = {}

    def _template_values(self) -> dict[str, str]:
        locations = self._locations or get_platform_locations()
        agents_home = self._agents_home or get_agents_home()
        return {
            "HOME": str(locations.home),
            "CONFIG": str(locations.config),
            "VSCODE_CONFIG": str(locations.vscode_config),
            "ZED_CONFIG": str(locations.zed_config),
            "CLAUDE_DESKTOP_CONFIG": str(locations.claude_desktop_config),
            "AGENTS_HOME": str(agents_home),
        }

    def resolve_template(self, template: str, values: dict[str, str] | None = None) -> str:
        """Expand ``$VAR`` placeholders in a registry path template.

        Raises:
            RegistryError: If the template names an unknown variable
        """
        values = values if values is not None else self._template_values()

        def substitute(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in values:
                raise RegistryError(f"Unknown path variable ${name} in {template!r}", self.registry_path)
            return values[name]

        return _TEMPLATE_VAR.sub(substitute, template)

    def _read_raw(self) -> dict[str, Any]:
        try:
            if self.registry_path is None:
                text = _bundled_registry_text()
            else:
                text = self.registry_path.read_text(encoding="utf-8")
        except OSError as e:
            raise RegistryError(f"Cannot read provider registry: {e}", self.registry_path) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise RegistryError(f"Invalid provider registry JSON: {e}", self.registry_path) from e

        if not isinstance(data, dict) or not isinstance(data.get("providers"), dict):
            raise RegistryError("Provider registry must contain a 'providers' object", self.registry_path)
        return data

    def _ensure_loaded(self) -> dict[str, Provider]:
        if self._providers is not None:
            return self._providers

        data = self._read_raw()
        values = self._template_values()
        providers: dict[str, Provider] = {}
        aliases: dict[str, str] = {}

        for provider_id, raw in data["providers"].items():
            if not isinstance(raw, dict):
                raise RegistryError(f"Provider '{provider_id}' must be an object", self.registry_path)
            entry = dict(raw)
            entry.setdefault("id", provider_id)
            for field_name in _PATH_FIELDS:
                if isinstance(entry.get(field_name), str):
                    entry[field_name] = self.resolve_template(entry[field_name], values)

            try:
                provider = Provider.model_validate(entry)
            except ValidationError as e:
                raise RegistryError(f"Invalid provider '{provider_id}': {e}", self.registry_path) from e

            if provider.mcp_transform not in TRANSFORMS:
                raise RegistryError(
                    f"Provider '{provider.id}' declares unknown MCP transform '{provider.mcp_transform}'",
                    self.registry_path,
                )

            providers[provider.id] = provider
            for alias in provider.aliases:
                aliases[alias] = provider.id

        self._version = str(data.get("version", "0.0.0"))
        self._providers = providers
        self._aliases = aliases
        logger.debug("Loaded %d providers (registry %s)", len(providers), self._version)
        return providers

    # =========================================================================
    # Queries
    # =========================================================================

    def get_all_providers(self) -> list[Provider]:
        return list(self._ensure_loaded().values())

    def resolve_alias(self, id_or_alias: str) -> str:
        """Return the canonical provider id for an alias (unknown names pass through)."""
        self._ensure_loaded()
        return self._aliases.get(id_or_alias, id_or_alias)

    def get_provider(self, id_or_alias: str) -> Provider | None:
        """Look up a provider by id or alias."""
        return self._ensure_loaded().get(self.resolve_alias(id_or_alias))

    def get_providers_by_priority(self, priority: ProviderPriority) -> list[Provider]:
        return [p for p in self.get_all_providers() if p.priority == priority]

    def get_providers_by_status(self, status: ProviderStatus) -> list[Provider]:
        return [p for p in self.get_all_providers() if p.status == status]

    def get_providers_by_instruct_file(self, instruct_file: str) -> list[Provider]:
        return [p for p in self.get_all_providers() if p.instruct_file == instruct_file]

    def get_instruction_files(self) -> list[str]:
        """Unique instruction file names, in registry order."""
        return list(dict.fromkeys(p.instruct_file for p in self.get_all_providers()))

    def count(self) -> int:
        return len(self._ensure_loaded())

    def version(self) -> str:
        self._ensure_loaded()
        return self._version or "0.0.0"
