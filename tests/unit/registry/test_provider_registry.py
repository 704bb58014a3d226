"""Tests for caamp.registry.providers module."""

import json
from pathlib import Path

import pytest

from caamp.registry import ProviderRegistry, RegistryError
from caamp.utils.platform import PlatformLocations


def _entry(provider_id: str, **overrides) -> dict:
    entry = {
        "toolName": provider_id.title(),
        "pathGlobal": f"$HOME/.{provider_id}",
        "instructFile": "AGENTS.md",
        "configKey": "mcpServers",
        "configFormat": "json",
        "configPathGlobal": f"$HOME/.{provider_id}/mcp.json",
        "configPathProject": f".{provider_id}/mcp.json",
        "priority": "medium",
    }
    entry.update(overrides)
    return entry


@pytest.fixture
def locations(temp_dir: Path) -> PlatformLocations:
    home = temp_dir / "home"
    return PlatformLocations(
        home=home,
        config=home / ".config",
        vscode_config=home / ".config" / "Code" / "User",
        zed_config=home / ".config" / "zed",
        claude_desktop_config=home / ".config" / "Claude",
    )


@pytest.fixture
def write_registry(temp_dir: Path):
    """Write a registry file and return its path."""

    def factory(providers: dict, version: str = "9.9.9") -> Path:
        path = temp_dir / "providers.json"
        path.write_text(json.dumps({"version": version, "providers": providers}))
        return path

    return factory


class TestBundledRegistry:
    """Tests against the registry shipped with the package."""

    def test_loads_bundled_providers(self, locations: PlatformLocations, temp_dir: Path):
        """The bundled registry loads and validates."""
        registry = ProviderRegistry(locations=locations, agents_home=temp_dir / "agents")

        assert registry.count() >= 10
        assert registry.version() == "1.2.0"
        assert registry.get_provider("claude-code") is not None

    def test_bundled_aliases(self, locations: PlatformLocations, temp_dir: Path):
        """Bundled aliases resolve to canonical ids."""
        registry = ProviderRegistry(locations=locations, agents_home=temp_dir / "agents")

        assert registry.resolve_alias("claude") == "claude-code"
        assert registry.get_provider("copilot").id == "github-copilot"

    def test_bundled_paths_resolved(self, locations: PlatformLocations, temp_dir: Path):
        """Templates expand against the given platform locations."""
        registry = ProviderRegistry(locations=locations, agents_home=temp_dir / "agents")

        claude = registry.get_provider("claude-code")
        copilot = registry.get_provider("github-copilot")

        assert claude.config_path_global == locations.home / ".claude.json"
        assert copilot.config_path_global == locations.vscode_config / "mcp.json"
        assert "$" not in str(registry.get_provider("agents").config_path_global)


class TestProviderRegistry:
    """Tests for ProviderRegistry with custom registry files."""

    def test_resolves_templates(self, write_registry, locations: PlatformLocations, temp_dir: Path):
        """$HOME and $AGENTS_HOME are expanded."""
        path = write_registry(
            {"a": _entry("a"), "b": _entry("b", configPathGlobal="$AGENTS_HOME/mcp.json")}
        )
        registry = ProviderRegistry(path, locations=locations, agents_home=temp_dir / "agents")

        assert registry.get_provider("a").path_global == locations.home / ".a"
        assert registry.get_provider("b").config_path_global == temp_dir / "agents" / "mcp.json"

    def test_unknown_template_variable(self, write_registry, locations: PlatformLocations):
        """Unknown variables raise RegistryError."""
        path = write_registry({"a": _entry("a", pathGlobal="$NOWHERE/a")})

        with pytest.raises(RegistryError, match=r"\$NOWHERE"):
            ProviderRegistry(path, locations=locations).get_all_providers()

    def test_id_defaults_to_key(self, write_registry, locations: PlatformLocations):
        path = write_registry({"zed": _entry("zed")})

        assert ProviderRegistry(path, locations=locations).get_provider("zed").id == "zed"

    def test_aliases(self, write_registry, locations: PlatformLocations):
        """Aliases resolve; unknown names pass through unresolved."""
        path = write_registry({"github-copilot": _entry("github-copilot", aliases=["copilot", "vscode"])})
        registry = ProviderRegistry(path, locations=locations)

        assert registry.get_provider("vscode").id == "github-copilot"
        assert registry.resolve_alias("unknown") == "unknown"
        assert registry.get_provider("unknown") is None

    def test_queries(self, write_registry, locations: PlatformLocations):
        """Filters by priority, status and instruction file."""
        path = write_registry(
            {
                "a": _entry("a", priority="high", instructFile="CLAUDE.md"),
                "b": _entry("b", priority="low", status="beta"),
                "c": _entry("c", priority="high"),
            }
        )
        registry = ProviderRegistry(path, locations=locations)

        assert [p.id for p in registry.get_providers_by_priority("high")] == ["a", "c"]
        assert [p.id for p in registry.get_providers_by_status("beta")] == ["b"]
        assert [p.id for p in registry.get_providers_by_instruct_file("AGENTS.md")] == ["b", "c"]
        assert registry.get_instruction_files() == ["CLAUDE.md", "AGENTS.md"]
        assert registry.version() == "9.9.9"

    def test_caches_until_reset(self, write_registry, locations: PlatformLocations):
        """Loaded data is cached; reset() forces a reload."""
        path = write_registry({"a": _entry("a")})
        registry = ProviderRegistry(path, locations=locations)
        assert registry.count() == 1

        write_registry({"a": _entry("a"), "b": _entry("b")})
        assert registry.count() == 1

        registry.reset()
        assert registry.count() == 2

    def test_unknown_transform(self, write_registry, locations: PlatformLocations):
        """A provider naming an unregistered transform is rejected."""
        path = write_registry({"a": _entry("a", mcpTransform="nope")})

        with pytest.raises(RegistryError, match="unknown MCP transform 'nope'"):
            ProviderRegistry(path, locations=locations).count()

    def test_invalid_provider(self, write_registry, locations: PlatformLocations):
        """Schema violations are wrapped in RegistryError."""
        path = write_registry({"a": _entry("a", configFormat="ini")})

        with pytest.raises(RegistryError, match="Invalid provider 'a'"):
            ProviderRegistry(path, locations=locations).count()

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(RegistryError, match="Cannot read"):
            ProviderRegistry(temp_dir / "missing.json").count()

    def test_malformed_json(self, temp_dir: Path):
        path = temp_dir / "providers.json"
        path.write_text("{")

        with pytest.raises(RegistryError, match="Invalid provider registry JSON"):
            ProviderRegistry(path).count()

    def test_missing_providers_object(self, temp_dir: Path):
        path = temp_dir / "providers.json"
        path.write_text('{"version": "1"}')

        with pytest.raises(RegistryError, match="'providers' object"):
            ProviderRegistry(path).count()
