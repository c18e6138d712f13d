"""
Connection commands.

  socialpub connections add    <client-id> --platform … --token … [--account-id … | --page-id …]
  socialpub connections list   [--client …]
  socialpub connections remove <client-id> <platform>
"""

from __future__ import annotations

from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from socialpub.cli.common import format_dt, parse_time
from socialpub.connections.models import PlatformConnection
from socialpub.pipeline import Pipeline
from socialpub.posts.models import Platform

console = Console()
app = typer.Typer(help="Manage stored platform connections.")


@app.command()
def add(
    client_id: str = typer.Argument(..., help="Client ID"),
    platform: Platform = typer.Option(..., "--platform", "-p", help="instagram | facebook"),
    token: str = typer.Option(..., "--token", help="Access token"),
    expires: Optional[str] = typer.Option(None, "--expires", help="Token expiry (ISO datetime)."),
    account_id: Optional[str] = typer.Option(None, "--account-id", help="Instagram business account ID"),
    account_name: Optional[str] = typer.Option(None, "--account-name"),
    page_id: Optional[str] = typer.Option(None, "--page-id", help="Facebook page ID"),
    page_name: Optional[str] = typer.Option(None, "--page-name"),
) -> None:
    """Store or replace a client's connection for one platform."""
    try:
        connection = PlatformConnection(
            client_id=client_id,
            platform=platform,
            access_token=token,
            token_expires_at=parse_time(expires, "--expires") if expires else None,
            account_id=account_id,
            account_name=account_name,
            page_id=page_id,
            page_name=page_name,
        )
    except ValueError as exc:
        rprint(f"[red]Invalid connection:[/red] {exc}")
        raise typer.Exit(1)

    with Pipeline.from_settings() as pipeline:
        pipeline.connections.upsert(connection)
    rprint(f"[green]✓ Saved[/green] {platform.value} connection for [cyan]{client_id}[/cyan]")


@app.command("list")
def list_connections(
    client_id: Optional[str] = typer.Option(None, "--client", help="Filter by client."),
) -> None:
    """List stored connections (tokens are not shown)."""
    with Pipeline.from_settings() as pipeline:
        store = pipeline.connections
        found = store.list_for_client(client_id) if client_id else store.list_all()

    if not found:
        rprint("[yellow]No connections found.[/yellow]")
        return

    table = Table(title=f"Connections: {len(found)}")
    table.add_column("Client", style="cyan")
    table.add_column("Platform")
    table.add_column("Account / Page")
    table.add_column("ID", style="dim")
    table.add_column("Token expires (UTC)")
    for c in found:
        table.add_row(
            c.client_id,
            c.platform.value,
            c.display_name or "-",
            c.account_id or c.page_id or "-",
            format_dt(c.token_expires_at) if c.token_expires_at else "never",
        )
    console.print(table)


@app.command()
def remove(
    client_id: str = typer.Argument(..., help="Client ID"),
    platform: Platform = typer.Argument(..., help="instagram | facebook"),
) -> None:
    """Delete a stored connection."""
    with Pipeline.from_settings() as pipeline:
        removed = pipeline.connections.delete(client_id, platform)
    if not removed:
        rprint(f"[yellow]No {platform.value} connection for {client_id}.[/yellow]")
        raise typer.Exit(1)
    rprint(f"[green]✓ Removed[/green] {platform.value} connection for [cyan]{client_id}[/cyan]")
