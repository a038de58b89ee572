"""
FleetLink developer CLI.

Inspect candidate generation, run discovery, probe a single address and send
ad-hoc requests through the resilient client.
"""

import asyncio
import json
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import LinkSettings
from .container import LinkContainer
from .discovery import Candidate, CandidateGenerator, HTTPProbeRunner
from .errors import FleetLinkError
from .logging import setup_logging

console = Console()


def _load_settings(ctx: click.Context) -> LinkSettings:
    options = ctx.obj
    overrides: dict[str, Any] = {}
    if options.get("storage_path"):
        overrides["storage_path"] = Path(options["storage_path"])
    if options.get("environment"):
        overrides["environment"] = options["environment"]
    if options.get("config_file"):
        return LinkSettings.from_yaml(options["config_file"], **overrides)
    return LinkSettings(**overrides)


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except FleetLinkError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise SystemExit(1) from e


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_file", type=click.Path(exists=True), help="YAML settings file")
@click.option(
    "--env",
    "environment",
    type=click.Choice(["development", "production"]),
    help="Override the configured environment",
)
@click.option("--storage-path", type=click.Path(), help="Where the discovery cache is persisted")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_file, environment, storage_path, verbose):
    """FleetLink - backend discovery and resilient API access."""
    ctx.ensure_object(dict)
    ctx.obj.update(config_file=config_file, environment=environment, storage_path=storage_path)
    settings = _load_settings(ctx)
    setup_logging(
        service_name=settings.service_name,
        log_level="DEBUG" if verbose else settings.log_level,
        enable_json=settings.log_json,
    )
    ctx.obj["settings"] = settings


@cli.command()
@click.pass_context
def candidates(ctx):
    """List candidate addresses in probe order."""
    settings: LinkSettings = ctx.obj["settings"]
    generated = CandidateGenerator.from_settings(settings).generate()

    table = Table(title=f"Candidates ({len(generated)})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Address", style="cyan")
    table.add_column("Batch", justify="right")
    for index, candidate in enumerate(generated):
        table.add_row(str(index + 1), candidate.base_url, str(index // settings.batch_size + 1))
    console.print(table)


@cli.command()
@click.option("--force", is_flag=True, help="Skip cached results and probe every candidate")
@click.pass_context
def discover(ctx, force):
    """Resolve the backend address."""
    settings: LinkSettings = ctx.obj["settings"]

    async def run() -> tuple[str, dict[str, Any]]:
        async with LinkContainer.from_settings(settings) as container:
            address = await container.resolver.resolve(force)
            stats = container.resolver.get_stats() if hasattr(container.resolver, "get_stats") else {}
            return address, stats

    address, stats = _run(run())
    console.print(Panel.fit(f"[green]{address}[/green]", title="Backend"))
    if stats:
        table = Table(show_header=False)
        for name, value in stats.items():
            table.add_row(name, str(value))
        console.print(table)


@cli.command()
@click.argument("url")
@click.option("--timeout", type=float, help="Probe timeout in seconds")
@click.pass_context
def probe(ctx, url, timeout):
    """Run the liveness check against a single address."""
    settings: LinkSettings = ctx.obj["settings"]
    try:
        candidate = Candidate.from_url(url)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="URL") from e

    async def run() -> bool:
        runner = HTTPProbeRunner(settings.health_path)
        try:
            return await runner.probe(candidate, timeout or settings.probe_timeout)
        finally:
            await runner.close()

    if _run(run()):
        console.print(f"[green]Alive:[/green] {candidate.base_url}")
    else:
        console.print(f"[red]No answer:[/red] {candidate.base_url}")
        raise SystemExit(1)


@cli.command()
@click.argument("method", type=click.Choice(["GET", "POST", "PUT", "PATCH", "DELETE"], case_sensitive=False))
@click.argument("path")
@click.option("--data", "-d", help="JSON request body")
@click.option("--token", "-t", help="Bearer token")
@click.pass_context
def request(ctx, method, path, data, token):
    """Send a request through the resilient client and print the response body."""
    settings: LinkSettings = ctx.obj["settings"]
    try:
        body = json.loads(data) if data else None
    except ValueError as e:
        raise click.BadParameter(f"Invalid JSON: {e}", param_hint="--data") from e

    async def run() -> Any:
        async with LinkContainer.from_settings(settings) as container:
            if token:
                container.client.set_auth_token(token)
            return await container.client.request(method, path, body)

    response = _run(run())
    console.print(f"[blue]HTTP {response.status}[/blue] {response.url}")
    if isinstance(response.body, (dict, list)):
        console.print_json(json.dumps(response.body))
    elif response.body is not None:
        console.print(response.body)


@cli.command()
@click.pass_context
def forget(ctx):
    """Clear the cached backend address."""
    settings: LinkSettings = ctx.obj["settings"]

    async def run() -> None:
        async with LinkContainer.from_settings(settings) as container:
            await container.resolver.invalidate()

    _run(run())
    console.print("[green]Cached backend address cleared[/green]")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
