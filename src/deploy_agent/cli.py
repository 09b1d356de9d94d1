"""Typer command line for managing projects and their tokens."""

from dataclasses import dataclass
import json as json_lib
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table
import typer

from deploy_agent import __version__, registry
from deploy_agent.config import Settings, get_settings
from deploy_agent.errors import DeployAgentError
from deploy_agent.logging_config import setup_logging
from deploy_agent.registry import AddProjectRequest
from deploy_agent.store import ConfigurationStore
from deploy_agent.validation import validate

app = typer.Typer(
    name="deploy-agent",
    help="Manage webhook projects and their per-network tokens",
    add_completion=False,
)
console = Console()


@dataclass(frozen=True)
class CommandContext:
    settings: Settings
    store: ConfigurationStore


def _context(ctx: typer.Context) -> CommandContext:
    return ctx.obj


def _fail(error: Exception) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    return typer.Exit(1)


@app.callback()
def callback(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (default: ~/.deploy-agent.yaml)"
    ),
):
    """
    Deployment agent
    """
    settings = get_settings()
    if config_file is not None:
        settings = settings.model_copy(update={"config_file": config_file.expanduser()})

    setup_logging(
        service_name=settings.service_name,
        log_format=settings.log_format,
        log_level=settings.log_level,
    )
    ctx.obj = CommandContext(settings=settings, store=ConfigurationStore(settings.config_file))


@app.command()
@validate(AddProjectRequest)
def add(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", "-n", help="Name of project."),
    max_args: int = typer.Option(
        0, "--max-args", help="Maximum arguments limit for each of the hooks in the project."
    ),
    hooks: Optional[list[str]] = typer.Option(
        None, "--hook", help="Path to script to be executed on webhook call."
    ),
    pre_hook: str = typer.Option(
        "", "--pre-hook", help="Path to script to be executed before the event."
    ),
    post_hook: str = typer.Option(
        "", "--post-hook", help="Path to script to be executed after the event."
    ),
    error_hook: str = typer.Option(
        "", "--error-hook", help="Path to script to be executed in case of error."
    ),
    work_dir: str = typer.Option(str(Path.home()), "--work-dir", help="Work directory."),
    cidrs: Optional[list[str]] = typer.Option(
        None,
        "--ip-cidr",
        help="Whitelist network CIDR which can access the webhook (default 0.0.0.0/0).",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Add a new project with its hooks and whitelisted networks."""
    request = AddProjectRequest(
        name=name,
        max_args=max_args,
        hooks=hooks,
        pre_hook=pre_hook,
        post_hook=post_hook,
        error_hook=error_hook,
        work_dir=work_dir,
        cidrs=cidrs,
    )
    try:
        project = registry.add_project(_context(ctx).store, request)
    except DeployAgentError as e:
        raise _fail(e) from e

    hashes = project.network_hashes()
    if json_output:
        payload = {
            "uuid": project.uuid,
            "name": project.name,
            "hashes": [h.model_dump() for h in hashes],
        }
        typer.echo(json_lib.dumps(payload, indent=2))
        return

    console.print("[bold green]✓ Project added successfully![/bold green]")
    console.print(f"UUID: [cyan]{project.uuid}[/cyan]")
    console.print(f"Name: [magenta]{escape(project.name)}[/magenta]")
    for h in hashes:
        typer.echo(f"{h.network} : {h.hash}")


@app.command()
def regenerate(
    ctx: typer.Context,
    uuid: str = typer.Argument(..., help="UUID of the project"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Regenerate every token of a project and print the new hashes."""
    try:
        hashes = registry.regenerate(_context(ctx).store, uuid)
    except DeployAgentError as e:
        raise _fail(e) from e

    if json_output:
        typer.echo(json_lib.dumps([h.model_dump() for h in hashes], indent=2))
        return

    for h in hashes:
        typer.echo(f"{h.network} : {h.hash}")


@app.command("list")
def list_(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List configured projects."""
    try:
        projects = registry.list_projects(_context(ctx).store)
    except DeployAgentError as e:
        raise _fail(e) from e

    if json_output:
        payload = [
            {
                "uuid": p.uuid,
                "name": p.name,
                "networks": [t.whitelisted_network for t in p.tokens],
            }
            for p in projects
        ]
        typer.echo(json_lib.dumps(payload, indent=2))
        return

    table = Table(title="Projects")
    table.add_column("UUID", style="cyan", no_wrap=True)
    table.add_column("Name", style="magenta")
    table.add_column("Networks", style="green")

    for p in projects:
        table.add_row(p.uuid, p.name, ", ".join(t.whitelisted_network for t in p.tokens))

    console.print(table)


@app.command()
def remove(
    ctx: typer.Context,
    uuid: str = typer.Argument(..., help="UUID of the project"),
):
    """Remove a project from the configuration."""
    try:
        project = registry.remove_project(_context(ctx).store, uuid)
    except DeployAgentError as e:
        raise _fail(e) from e

    console.print(
        f"[bold green]✓ Removed project[/bold green] {escape(project.name)} ({project.uuid})"
    )


@app.command()
def verify(
    ctx: typer.Context,
    uuid: str = typer.Argument(..., help="UUID of the project"),
    client_ip: str = typer.Option(..., "--ip", help="Source IP address of the caller"),
    presented_hash: str = typer.Option(..., "--hash", help="Hash presented by the caller"),
    scan_all_networks: bool = typer.Option(
        False,
        "--scan-all-networks",
        help="Try every matching network instead of only the first",
    ),
):
    """Check whether a caller would be authorized. Exits 1 when denied."""
    context = _context(ctx)
    scan_all_networks = scan_all_networks or context.settings.scan_all_networks

    try:
        allowed = registry.verify(
            context.store,
            uuid,
            client_ip,
            presented_hash,
            scan_all_networks=scan_all_networks,
        )
    except DeployAgentError as e:
        raise _fail(e) from e

    if not allowed:
        console.print("[bold red]✗ Denied[/bold red]")
        raise typer.Exit(1)
    console.print("[bold green]✓ Authorized[/bold green]")


@app.command()
def version():
    """Print the version."""
    typer.echo(__version__)


if __name__ == "__main__":
    app()
