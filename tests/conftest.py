"""Shared fixtures for caamp tests."""

import hashlib
import shutil
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from caamp.config.schemas import McpServerConfig, Provider


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="caamp_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def project_dir(temp_dir: Path) -> Path:
    """Create a temporary project directory."""
    path = temp_dir / "project"
    path.mkdir()
    return path


@pytest.fixture
def home_dir(temp_dir: Path) -> Path:
    """Directory standing in for the user's home."""
    path = temp_dir / "home"
    path.mkdir()
    return path


@pytest.fixture
def make_provider(home_dir: Path) -> Callable[..., Provider]:
    """Factory for providers whose global files live under ``home_dir``.

    Defaults describe a JSON provider with a project config at
    ``.<id>/mcp.json``; any field can be overridden by keyword.
    """

    def factory(provider_id: str = "test-agent", **overrides: Any) -> Provider:
        data: dict[str, Any] = {
            "id": provider_id,
            "tool_name": provider_id.title(),
            "path_global": home_dir / f".{provider_id}",
            "instruct_file": "AGENTS.md",
            "config_key": "mcpServers",
            "config_format": "json",
            "config_path_global": home_dir / f".{provider_id}" / "mcp.json",
            "config_path_project": f".{provider_id}/mcp.json",
            "supported_transports": ("stdio", "sse", "http"),
            "supports_headers": True,
            "priority": "high",
        }
        data.update(overrides)
        return Provider.model_validate(data)

    return factory


@pytest.fixture
def stdio_config() -> McpServerConfig:
    """A local command server."""
    return McpServerConfig(command="npx", args=["-y", "@modelcontextprotocol/server-filesystem"])


@pytest.fixture
def remote_config() -> McpServerConfig:
    """A remote http server with an auth header."""
    return McpServerConfig(
        type="http",
        url="https://mcp.example.com/mcp",
        headers={"Authorization": "Bearer token"},
    )


@pytest.fixture
def file_hash() -> Callable[[Path], str]:
    """SHA-256 of a file's bytes, for before/after comparisons."""

    def _hash(path: Path) -> str:
        return hashlib.sha256(path.read_bytes()).hexdigest()

    return _hash
