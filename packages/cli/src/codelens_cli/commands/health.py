"""health / status commands: probe the configured AI provider."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("health")
@click.pass_context
def health_cmd(ctx):
    """Send one trivial prompt to the provider and report whether it answered.

    Exits with status 1 when the provider is unhealthy, so it can be used in
    scripts and container health checks.
    """
    from codelens_cli.cli import build_service

    service = build_service(dict(ctx.obj["config"]))
    health = service.health()

    style = "green" if health.healthy else "red"
    console.print(
        f"[{style}]{health.status.upper()}[/{style}]  {health.provider} ({health.model})  "
        f"responded in {health.response_time_ms}ms"
    )
    if not health.healthy:
        ctx.exit(1)


@click.command("status")
@click.option("--json", "as_json", is_flag=True, help="Print the status report as JSON.")
@click.pass_context
def status_cmd(ctx, as_json: bool):
    """Show service capabilities and provider health."""
    from codelens_cli.cli import build_service

    service = build_service(dict(ctx.obj["config"]))
    report = service.status()

    if as_json:
        click.echo(json.dumps(report, indent=2))
        return

    style = "green" if report["status"] == "operational" else "yellow"
    console.print(f"\n[bold]codelens[/bold]  [{style}]{report['status']}[/{style}]")
    table = Table(show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Provider", f"{report['provider']} ({report['model']})")
    for key, value in report["capabilities"].items():
        table.add_row(key, str(value))
    console.print(table)
