"""
Meta token commands.

  socialpub tokens exchange <short-token> [--client …] [--platform …]
  socialpub tokens refresh
  socialpub tokens check    <client-id> [--platform …]
"""

from __future__ import annotations

from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from socialpub.cli.common import format_dt
from socialpub.errors import ConfigurationError, NotFoundError
from socialpub.pipeline import Pipeline
from socialpub.posts.models import Platform

console = Console()
app = typer.Typer(help="Exchange, refresh and check Meta access tokens.")


@app.command()
def exchange(
    access_token: str = typer.Argument(..., help="Short-lived user token"),
    client_id: Optional[str] = typer.Option(None, "--client", help="Store the result on this client's connections."),
    platform: Optional[Platform] = typer.Option(None, "--platform", "-p"),
) -> None:
    """Exchange a short-lived token for a long-lived one."""
    with Pipeline.from_settings() as pipeline:
        try:
            result = pipeline.refresher.exchange(access_token, client_id, platform)
        except ConfigurationError as exc:
            rprint(f"[red]{exc}[/red]  [dim]Set META_APP_ID and META_APP_SECRET.[/dim]")
            raise typer.Exit(1)

    if not result.exchanged:
        rprint(f"[yellow]Not exchanged:[/yellow] {result.message}")
        return
    rprint(
        f"[green]✓ Exchanged[/green]\n"
        f"  Expires : {format_dt(result.expires_at)} UTC\n"
        f"  Token   : [dim]{result.long_lived_token}[/dim]"
    )


@app.command()
def refresh() -> None:
    """Re-exchange every stored token that expires soon."""
    with Pipeline.from_settings() as pipeline:
        try:
            summary = pipeline.refresher.refresh_expiring()
        except ConfigurationError as exc:
            rprint(f"[red]{exc}[/red]")
            raise typer.Exit(1)

    if not summary.total:
        rprint("[green]✓ No tokens need refreshing.[/green]")
        return

    table = Table(title=f"Refreshed {summary.refreshed} of {summary.total} token(s)")
    table.add_column("Client", style="cyan")
    table.add_column("Platform")
    table.add_column("Account")
    table.add_column("Result")
    for item in summary.results:
        table.add_row(
            item.client_id,
            item.platform.value,
            item.account_name or "-",
            "[green]✓[/green]" if item.success else f"[red]✗ {item.error}[/red]",
        )
    console.print(table)


@app.command()
def check(
    client_id: str = typer.Argument(..., help="Client ID"),
    platform: Optional[Platform] = typer.Option(None, "--platform", "-p"),
) -> None:
    """Test a client's stored token against the Graph API."""
    with Pipeline.from_settings() as pipeline:
        try:
            result = pipeline.refresher.check(client_id, platform)
        except NotFoundError as exc:
            rprint(f"[red]{exc}[/red]")
            raise typer.Exit(1)

    if result.is_valid:
        rprint(f"[green]✓ Token valid[/green]  expires {format_dt(result.expires_at)}")
    else:
        rprint(f"[red]✗ Token invalid:[/red] {result.error}")
        raise typer.Exit(1)
