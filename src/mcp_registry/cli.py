"""mcp-registry command line interface."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import click

from . import __version__
from .catalog import RegistryClient
from .config import DEFAULT_CONFIG_PATH
from .config import RegistryConfig
from .config import ensure_directories
from .config import get_config_value
from .config import load_config
from .config import set_config_value
from .exceptions import RegistryError
from .installer import InstallationManager
from .schema import ServerManifest

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

ALIASES = {"ls": "list", "i": "install", "up": "update", "rm": "remove"}


class AliasedGroup(click.Group):
    """Group that resolves short command aliases (``i`` -> ``install``)."""

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        return super().get_command(ctx, ALIASES.get(cmd_name, cmd_name))

    def resolve_command(self, ctx: click.Context, args: list[str]):
        _, cmd, args = super().resolve_command(ctx, args)
        return cmd.name if cmd else None, cmd, args


@dataclass
class CliContext:
    """Objects shared by all commands. Tests construct their own."""

    config: RegistryConfig
    config_path: Path
    client: RegistryClient
    manager: InstallationManager


def create_context(config_path: Path) -> CliContext:
    config = load_config(config_path)
    return CliContext(
        config=config,
        config_path=config_path,
        client=RegistryClient(config.registry_url),
        manager=InstallationManager(config.install_dir),
    )


def _fail(message: str) -> NoReturn:
    click.echo(click.style(message, fg="red"), err=True)
    raise SystemExit(1)


def _print_manifest_line(server: ServerManifest) -> None:
    click.echo(f"{click.style(server.name, fg='cyan')} {click.style(f'v{server.version}', dim=True)}")
    click.echo(f"  {server.description}")


@click.group(cls=AliasedGroup, context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, prog_name="mcp-registry")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG_PATH,
    envvar="MCP_REGISTRY_CONFIG",
    show_default=True,
    help="Path to config.json.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path, verbose: bool) -> None:
    """npm-like registry for Model Context Protocol servers."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        ctx.obj = create_context(config_path)


@cli.command()
@click.argument("query")
@click.option("-p", "--page", type=int, default=1, show_default=True, help="Page number.")
@click.option("-l", "--limit", type=int, default=20, show_default=True, help="Results per page.")
@click.pass_obj
def search(obj: CliContext, query: str, page: int, limit: int) -> None:
    """Search for MCP servers."""
    try:
        result = asyncio.run(obj.client.search(query, page=page, page_size=limit))
    except RegistryError as e:
        _fail(f"Search failed: {e.message}")

    if not result.servers:
        click.echo(click.style("No servers found matching your query.", fg="yellow"))
        return

    click.echo(click.style(f"\nFound {result.total} server(s):\n", bold=True))
    for server in result.servers:
        _print_manifest_line(server)
        stats = server.stats
        downloads = stats.downloads if stats else 0
        rating = f"{stats.rating:.1f}" if stats else "N/A"
        click.echo(click.style(f"  by {server.author.name} • {downloads} downloads • ★ {rating}", dim=True))
        click.echo(click.style(f"  Install: mcp-registry install {server.id}", dim=True))
        click.echo()

    click.echo(click.style(f"Page {result.page} of {result.total_pages}", dim=True))


@cli.command(name="list")
@click.option("-p", "--page", type=int, default=1, show_default=True, help="Page number.")
@click.option("-l", "--limit", type=int, default=20, show_default=True, help="Results per page.")
@click.pass_obj
def list_cmd(obj: CliContext, page: int, limit: int) -> None:
    """List all available servers (alias: ls)."""
    try:
        result = asyncio.run(obj.client.list_servers(page=page, page_size=limit))
    except RegistryError as e:
        _fail(f"Failed to list servers: {e.message}")

    click.echo(click.style(f"\nAvailable servers ({result.total} total):\n", bold=True))
    for server in result.servers:
        _print_manifest_line(server)
        click.echo()


@cli.command()
@click.argument("server_id")
@click.pass_obj
def install(obj: CliContext, server_id: str) -> None:
    """Install an MCP server (alias: i)."""
    try:
        manifest = asyncio.run(obj.client.get_manifest(server_id))
        asyncio.run(obj.manager.install(manifest))
        run_command = obj.manager.get_run_command(server_id)
    except RegistryError as e:
        _fail(f"Installation failed: {e.message}")

    click.echo(click.style("✓ ", fg="green") + f"Installed {click.style(manifest.name, fg='cyan')} v{manifest.version}")

    if manifest.runtime.env:
        click.echo(click.style("Required environment variables:", fg="yellow"))
        for name in manifest.runtime.env:
            click.echo(f"  - {name}")
    if run_command:
        click.echo(click.style(f"\nRun command: {run_command}", dim=True))


@cli.command()
@click.argument("server_id")
@click.pass_obj
def update(obj: CliContext, server_id: str) -> None:
    """Update an installed MCP server (alias: up)."""
    try:
        manifest = asyncio.run(obj.client.get_manifest(server_id))
        asyncio.run(obj.manager.update(manifest))
    except RegistryError as e:
        _fail(f"Update failed: {e.message}")

    click.echo(click.style("✓ ", fg="green") + f"Updated {click.style(manifest.name, fg='cyan')} to v{manifest.version}")


@cli.command()
@click.argument("server_id")
@click.pass_obj
def remove(obj: CliContext, server_id: str) -> None:
    """Remove an installed MCP server (alias: rm)."""
    try:
        asyncio.run(obj.manager.remove(server_id))
    except RegistryError as e:
        _fail(f"Removal failed: {e.message}")

    click.echo(click.style("✓ ", fg="green") + f"Removed {click.style(server_id, fg='cyan')}")


@cli.command()
@click.pass_obj
def installed(obj: CliContext) -> None:
    """List locally installed servers."""
    records = obj.manager.list_installed()
    if not records:
        click.echo(click.style("No servers installed.", fg="yellow"))
        return

    for record in records:
        click.echo(f"{click.style(record.id, fg='cyan')} {click.style(f'v{record.version}', dim=True)}")
        click.echo(f"  {record.path}")
        click.echo(click.style(f"  updated {record.updated_at}", dim=True))


@cli.command(name="run-command")
@click.argument("server_id")
@click.pass_obj
def run_command(obj: CliContext, server_id: str) -> None:
    """Print the command that starts an installed server."""
    try:
        command = obj.manager.get_run_command(server_id)
    except RegistryError as e:
        _fail(f"Error: {e.message}")

    if command is None:
        _fail(f"Server {server_id} is not installed.")
    click.echo(command)


@cli.command()
@click.argument("server_id")
@click.pass_obj
def info(obj: CliContext, server_id: str) -> None:
    """Show detailed information about a server."""
    try:
        manifest = asyncio.run(obj.client.get_manifest(server_id))
    except RegistryError as e:
        _fail(f"Error: {e.message}")

    def label(text: str) -> str:
        return click.style(text, bold=True)

    click.echo(label(f"\n{manifest.name}"))
    click.echo(click.style(f"v{manifest.version}", dim=True))
    click.echo()
    click.echo(manifest.description)
    click.echo()
    click.echo(f"{label('Author:')} {manifest.author.name}")
    if manifest.homepage:
        click.echo(f"{label('Homepage:')} {manifest.homepage}")
    if manifest.repository:
        click.echo(f"{label('Repository:')} {manifest.repository}")
    click.echo(f"{label('License:')} {manifest.license}")
    click.echo(f"{label('MCP Version:')} {manifest.mcp_version}")

    if manifest.keywords:
        click.echo(f"\n{label('Keywords:')} {', '.join(manifest.keywords)}")

    if manifest.capabilities:
        click.echo(label("\nCapabilities:"))
        for capability in manifest.capabilities:
            click.echo(f"  {click.style(capability.type, fg='cyan')}: {capability.name}")
            click.echo(f"    {capability.description}")

    if manifest.stats:
        stats = manifest.stats
        click.echo(label("\nStats:"))
        click.echo(f"  Downloads: {stats.downloads}")
        click.echo(f"  Rating: {stats.rating:.1f}/5 ({stats.review_count} reviews)")


@cli.command()
@click.option("--get", "get_key", help="Print one config value.")
@click.option("--set", "set_key", help="Config key to set (requires --value).")
@click.option("--value", help="Value to set.")
@click.pass_obj
def config(obj: CliContext, get_key: str | None, set_key: str | None, value: str | None) -> None:
    """View or set configuration."""
    try:
        if get_key:
            click.echo(get_config_value(obj.config, get_key))
        elif set_key and value is not None:
            obj.config = set_config_value(set_key, value, obj.config_path)
            click.echo(click.style(f"Set {set_key} = {value}", fg="green"))
        else:
            click.echo(click.style("Current configuration:", bold=True))
            click.echo(obj.config.to_json())
    except KeyError as e:
        _fail(f"Error: {e.args[0]}")
    except ValueError as e:
        _fail(f"Error: invalid value for {set_key}: {e}")


@cli.command()
@click.pass_obj
def init(obj: CliContext) -> None:
    """Create the registry cache and install directories."""
    ensure_directories(obj.config)
    click.echo(click.style("✓ MCP Registry initialized", fg="green"))
    click.echo(click.style(f"Install directory: {obj.config.install_dir}", dim=True))


@cli.command()
@click.option("--host", default="localhost", show_default=True)
@click.option("--port", type=int, default=3000, show_default=True)
@click.pass_obj
def serve(obj: CliContext, host: str, port: int) -> None:
    """Serve the registry browsing API over HTTP."""
    from .web import create_app
    from .web import serve as run_server

    run_server(create_app(obj.client, obj.manager), host=host, port=port)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
