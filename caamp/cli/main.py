"""Main CLI application for caamp."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from caamp import __version__
from caamp.config.parser import ConfigError
from caamp.config.schemas import McpMutation, McpServerConfig, Provider, Scope
from caamp.config.settings import CaampSettings, load_settings
from caamp.core.batch import BatchValidationError, install_batch_with_rollback
from caamp.core.conflicts import detect_mcp_config_conflicts
from caamp.core.lockfile import LockError, LockStateStore
from caamp.core.scopes import update_instructions_single_operation
from caamp.instructions.injector import check_all_injections
from caamp.instructions.templates import generate_injection_content
from caamp.mcp.installer import build_server_config
from caamp.mcp.reader import list_all_mcp_servers, remove_mcp_server
from caamp.registry import ProviderRegistry, RegistryError

app = typer.Typer(
    name="caamp",
    help="Configure MCP servers and instruction files across AI coding agents",
    add_completion=False,
    no_args_is_help=True,
)
mcp_app = typer.Typer(help="Install, inspect and remove MCP servers", no_args_is_help=True)
instructions_app = typer.Typer(help="Manage the caamp block in instruction files", no_args_is_help=True)
lock_app = typer.Typer(help="Inspect the caamp lock file", no_args_is_help=True)
app.add_typer(mcp_app, name="mcp")
app.add_typer(instructions_app, name="instructions")
app.add_typer(lock_app, name="lock")

console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger("caamp")


@dataclass
class CliState:
    settings: CaampSettings
    registry: ProviderRegistry

    @property
    def lock_store(self) -> LockStateStore:
        return LockStateStore.from_settings(self.settings)


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {message}")


def get_state(ctx: typer.Context) -> CliState:
    return ctx.obj


def resolve_providers(state: CliState, agents: list[str] | None) -> list[Provider]:
    """Look up the requested agents, or every registered provider if none are given."""
    try:
        if not agents:
            return state.registry.get_all_providers()
        providers = []
        for agent in agents:
            provider = state.registry.get_provider(agent)
            if provider is None:
                print_error(f"Unknown agent: {agent}")
                raise typer.Exit(1)
            providers.append(provider)
        return providers
    except RegistryError as e:
        print_error(str(e))
        raise typer.Exit(1) from e


def parse_headers(values: list[str] | None) -> dict[str, str] | None:
    """Parse ``Key=Value`` (or ``Key: Value``) header options."""
    if not values:
        return None
    headers: dict[str, str] = {}
    for value in values:
        sep = "=" if "=" in value else ":"
        key, found, val = value.partition(sep)
        if not found or not key.strip():
            print_error(f"Invalid header '{value}'. Expected Key=Value")
            raise typer.Exit(1)
        headers[key.strip()] = val.strip()
    return headers


def build_config_from_options(
    command: str | None, url: str | None, package: str | None, transport: str | None, headers: list[str] | None
) -> tuple[McpServerConfig, str, str]:
    """Build the server config and its (source, source type) for lock recording."""
    given = [opt for opt in (command, url, package) if opt]
    if len(given) != 1:
        print_error("Specify exactly one of --command, --url or --package")
        raise typer.Exit(1)

    if url:
        source_type, source = "remote", url
    elif package:
        source_type, source = "package", package
    else:
        source_type, source = "command", command or ""

    try:
        config = build_server_config(source_type, source, transport, parse_headers(headers))
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    return config, source, source_type


AgentOption = Annotated[
    list[str] | None,
    typer.Option("--agent", "-a", help="Target agent id or alias (repeatable, default: all)"),
]
GlobalOption = Annotated[
    bool,
    typer.Option("--global", "-g", help="Use the global config instead of the project config"),
]
ProjectDirOption = Annotated[
    Path | None,
    typer.Option("--project-dir", "-p", help="Project directory (default: current directory)"),
]
CommandOption = Annotated[str | None, typer.Option("--command", "-c", help="Command line that starts the server")]
UrlOption = Annotated[str | None, typer.Option("--url", "-u", help="URL of a remote server")]
PackageOption = Annotated[str | None, typer.Option("--package", help="npm package launched with npx")]
TransportOption = Annotated[str | None, typer.Option("--transport", "-t", help="Remote transport: http or sse")]
HeaderOption = Annotated[list[str] | None, typer.Option("--header", "-H", help="Request header Key=Value")]


def _scope(is_global: bool) -> Scope:
    return "global" if is_global else "project"


@app.callback()
def callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug)",
        ),
    ] = 0,
    registry: Annotated[
        Path | None,
        typer.Option(
            "--registry",
            help="Provider registry JSON to use instead of the bundled one",
        ),
    ] = None,
) -> None:
    """caamp - central AI agent MCP and instruction management."""
    setup_logging(verbose)
    try:
        settings = load_settings()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    ctx.obj = CliState(settings=settings, registry=ProviderRegistry(registry_path=registry))


@app.command()
def version() -> None:
    """Show the caamp version."""
    console.print(f"caamp {__version__}")


@app.command()
def providers(
    ctx: typer.Context,
    priority: Annotated[
        str | None,
        typer.Option("--priority", help="Only show providers of this priority (high, medium, low)"),
    ] = None,
) -> None:
    """List registered providers."""
    state = get_state(ctx)
    try:
        selected = (
            state.registry.get_providers_by_priority(priority)  # type: ignore[arg-type]
            if priority
            else state.registry.get_all_providers()
        )
        registry_version = state.registry.version()
    except RegistryError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    table = Table(title=f"Providers (registry {registry_version})")
    table.add_column("Id", style="cyan")
    table.add_column("Tool")
    table.add_column("Format", style="green")
    table.add_column("Config key")
    table.add_column("Priority")
    table.add_column("Instructions", style="dim")

    for provider in selected:
        table.add_row(
            provider.id,
            provider.tool_name,
            provider.config_format,
            provider.config_key,
            provider.priority,
            provider.instruct_file,
        )

    console.print(table)


# =============================================================================
# mcp
# =============================================================================


@mcp_app.command("install")
def mcp_install(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Server name")],
    command: CommandOption = None,
    url: UrlOption = None,
    package: PackageOption = None,
    transport: TransportOption = None,
    header: HeaderOption = None,
    agent: AgentOption = None,
    is_global: GlobalOption = False,
    min_priority: Annotated[
        str | None,
        typer.Option("--min-priority", help="Skip providers below this priority"),
    ] = None,
    policy: Annotated[
        str | None,
        typer.Option("--policy", help="Conflict policy: fail, skip or overwrite"),
    ] = None,
    project_dir: ProjectDirOption = None,
) -> None:
    """Install an MCP server into every selected agent, rolling back on failure."""
    state = get_state(ctx)
    config, source, source_type = build_config_from_options(command, url, package, transport, header)
    targets = resolve_providers(state, agent)
    scope = _scope(is_global)
    project_dir = project_dir or Path.cwd()

    try:
        mutation = McpMutation(server_name=name, config=config, scope=scope)
        result = install_batch_with_rollback(
            targets,
            minimum_priority=min_priority or state.settings.default_minimum_priority,
            mcp=[mutation],
            project_dir=project_dir,
            policy=policy or state.settings.default_policy,
        )
    except (BatchValidationError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    for conflict in result.conflicts:
        print_warning(f"{conflict.provider_id}: {conflict.detail} [{conflict.code}]")
    for skipped in result.skipped:
        console.print(f"[dim]Skipped {skipped.provider_id} ({skipped.reason})[/dim]")

    if not result.success:
        print_error(result.error or "MCP install failed")
        if result.rollback_performed and not result.rollback_errors:
            console.print("Rolled back all changes")
        for message in result.rollback_errors:
            print_error(message)
        raise typer.Exit(1)

    installed = [r.provider_id for r in result.results if r.success]
    for r in result.results:
        print_success(f"{r.provider_id}: {r.config_path}")

    if installed:
        try:
            store = state.lock_store
            store.record_mcp_install(
                name,
                source,
                source_type,  # type: ignore[arg-type]
                installed,
                is_global,
                project_dir=None if is_global else str(project_dir),
            )
            if agent:
                store.save_last_selected_agents(installed)
        except LockError as e:
            print_error(str(e))
            raise typer.Exit(1) from e

    console.print(f"\nInstalled '{name}' for {len(installed)} agent(s)")


@mcp_app.command("conflicts")
def mcp_conflicts(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Server name")],
    command: CommandOption = None,
    url: UrlOption = None,
    package: PackageOption = None,
    transport: TransportOption = None,
    header: HeaderOption = None,
    agent: AgentOption = None,
    is_global: GlobalOption = False,
    project_dir: ProjectDirOption = None,
) -> None:
    """Show what would conflict if the server were installed (dry run)."""
    state = get_state(ctx)
    config, _, _ = build_config_from_options(command, url, package, transport, header)
    targets = resolve_providers(state, agent)

    mutation = McpMutation(server_name=name, config=config, scope=_scope(is_global))
    conflicts = detect_mcp_config_conflicts(targets, [mutation], project_dir or Path.cwd())

    if not conflicts:
        print_success("No conflicts")
        return

    table = Table(title=f"Conflicts for '{name}'")
    table.add_column("Agent", style="cyan")
    table.add_column("Code", style="yellow")
    table.add_column("Detail")
    for conflict in conflicts:
        table.add_row(conflict.provider_id, conflict.code, conflict.detail)
    console.print(table)


@mcp_app.command("list")
def mcp_list(
    ctx: typer.Context,
    agent: AgentOption = None,
    is_global: GlobalOption = False,
    project_dir: ProjectDirOption = None,
) -> None:
    """List configured MCP servers."""
    state = get_state(ctx)
    targets = resolve_providers(state, agent)
    entries = list_all_mcp_servers(targets, _scope(is_global), project_dir or Path.cwd())

    if not entries:
        console.print("No MCP servers configured")
        return

    table = Table(title="MCP Servers")
    table.add_column("Server", style="cyan")
    table.add_column("Agent", style="green")
    table.add_column("Config", style="dim")
    for entry in entries:
        table.add_row(entry.name, entry.provider_id, str(entry.config_path))
    console.print(table)


@mcp_app.command("remove")
def mcp_remove(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Server name")],
    agent: AgentOption = None,
    is_global: GlobalOption = False,
    project_dir: ProjectDirOption = None,
) -> None:
    """Remove an MCP server from the selected agents."""
    state = get_state(ctx)
    targets = resolve_providers(state, agent)
    scope = _scope(is_global)

    removed = []
    for provider in targets:
        try:
            if remove_mcp_server(provider, name, scope, project_dir or Path.cwd()):
                removed.append(provider.id)
        except ConfigError as e:
            print_warning(f"{provider.id}: {e}")

    if not removed:
        print_warning(f"'{name}' not found")
        raise typer.Exit(1)

    try:
        state.lock_store.remove_mcp_from_lock(name)
    except LockError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    print_success(f"Removed '{name}' from {', '.join(removed)}")


# =============================================================================
# instructions
# =============================================================================


@instructions_app.command("update")
def instructions_update(
    ctx: typer.Context,
    content: Annotated[str | None, typer.Argument(help="Custom content for the managed block")] = None,
    agent: AgentOption = None,
    is_global: GlobalOption = False,
    project_dir: ProjectDirOption = None,
) -> None:
    """Write the caamp block into each distinct instruction file."""
    state = get_state(ctx)
    targets = resolve_providers(state, agent)
    body = generate_injection_content(custom_content=content)

    try:
        summary = update_instructions_single_operation(targets, body, _scope(is_global), project_dir or Path.cwd())
    except OSError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    table = Table(title=f"Instruction files ({summary.scope})")
    table.add_column("File", style="cyan")
    table.add_column("Action", style="green")
    table.add_column("Agents")
    table.add_column("Formats", style="dim")
    for action in summary.actions:
        table.add_row(str(action.file), action.action, ", ".join(action.providers), ", ".join(action.config_formats))
    console.print(table)
    console.print(f"\n{summary.updated_files} file(s) updated")


@instructions_app.command("check")
def instructions_check(
    ctx: typer.Context,
    agent: AgentOption = None,
    is_global: GlobalOption = False,
    project_dir: ProjectDirOption = None,
) -> None:
    """Report whether each instruction file carries the caamp block."""
    state = get_state(ctx)
    targets = resolve_providers(state, agent)
    results = check_all_injections(targets, project_dir or Path.cwd(), _scope(is_global))

    table = Table(title="Instruction files")
    table.add_column("File", style="cyan")
    table.add_column("Agent")
    table.add_column("Status", style="green")
    for result in results:
        table.add_row(str(result.file), result.provider_id, result.status)
    console.print(table)


# =============================================================================
# lock
# =============================================================================


@lock_app.command("show")
def lock_show(ctx: typer.Context) -> None:
    """Show MCP servers and skills tracked in the lock file."""
    state = get_state(ctx)
    lock = state.lock_store.read()

    if not lock.mcp_servers and not lock.skills:
        console.print("Nothing tracked in the lock file")
        return

    table = Table(title=str(state.settings.lock_file_path))
    table.add_column("Kind", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Source")
    table.add_column("Agents", style="green")
    table.add_column("Updated", style="dim")
    for kind, entries in (("mcp", lock.mcp_servers), ("skill", lock.skills)):
        for entry in entries.values():
            table.add_row(kind, entry.name, entry.source, ", ".join(entry.agents), entry.updated_at or entry.installed_at)
    console.print(table)

    if lock.last_selected_agents:
        console.print(f"\nLast selected agents: {', '.join(lock.last_selected_agents)}")


if __name__ == "__main__":
    app()
