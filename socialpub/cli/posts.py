"""
Post management commands.

  socialpub posts schedule <client-id> --platform … --time … [--media-url …]
  socialpub posts list     [--client …] [--status …]
  socialpub posts show     <post-id>
  socialpub posts edit     <post-id> [--caption …] [--time …]
  socialpub posts retry    <post-id> [--time …]
"""

from __future__ import annotations

from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from socialpub.cli.common import STATUS_STYLE, format_dt, parse_time, preview
from socialpub.errors import InvalidTransitionError, NotFoundError
from socialpub.pipeline import Pipeline
from socialpub.posts.models import Platform, PostStatus, PostType

console = Console()
app = typer.Typer(help="Schedule and manage posts.")


# ---------------------------------------------------------------------------
# schedule
# ---------------------------------------------------------------------------


@app.command()
def schedule(
    client_id: str = typer.Argument(..., help="Client the post belongs to"),
    platform: Platform = typer.Option(..., "--platform", "-p", help="instagram | facebook | both"),
    time: str = typer.Option(..., "--time", "-t", help='ISO datetime, UTC if no offset, e.g. "2026-03-01T10:00"'),
    post_type: PostType = typer.Option(PostType.IMAGE, "--type", help="image | video | carousel | reel | story"),
    media_url: Optional[list[str]] = typer.Option(
        None, "--media-url", "-m", help="Public media URL (repeat for carousel)."
    ),
    caption: Optional[str] = typer.Option(None, "--caption", "-c"),
    hashtag: Optional[list[str]] = typer.Option(None, "--hashtag", help="Hashtag, e.g. '#news' (repeatable)."),
) -> None:
    """Queue a post for publishing at --time."""
    scheduled_at = parse_time(time)

    with Pipeline.from_settings() as pipeline:
        try:
            post = pipeline.service.schedule(
                client_id,
                platform,
                scheduled_at,
                post_type=post_type,
                media_urls=media_url or [],
                caption=caption,
                hashtags=hashtag or [],
                created_by="cli",
            )
        except ValueError as exc:
            rprint(f"[red]Invalid post:[/red] {exc}")
            raise typer.Exit(1)

    rprint(
        f"\n[green]✓ Scheduled[/green]\n"
        f"  Post ID  : [cyan]{post.id}[/cyan]\n"
        f"  Platform : {post.platform.value} ({post.post_type.value})\n"
        f"  Time     : {format_dt(post.scheduled_at)} UTC"
    )


# ---------------------------------------------------------------------------
# list / show
# ---------------------------------------------------------------------------


@app.command("list")
def list_posts(
    client_id: Optional[str] = typer.Option(None, "--client", help="Filter by client."),
    status: Optional[PostStatus] = typer.Option(None, "--status", "-s", help="Filter by status."),
    limit: int = typer.Option(50, "--limit", "-n"),
) -> None:
    """List posts, earliest first."""
    with Pipeline.from_settings() as pipeline:
        posts = pipeline.service.list_posts(client_id=client_id, status=status, limit=limit)
        stats = pipeline.service.stats()

    if not posts:
        rprint("[yellow]No posts found.[/yellow]")
        if stats:
            rprint(f"[dim]{stats}[/dim]")
        return

    table = Table(title=f"📅 Posts: {len(posts)} item(s)")
    table.add_column("ID", style="dim", width=12)
    table.add_column("Client", style="cyan", width=12)
    table.add_column("Platform", width=10)
    table.add_column("Type", width=9)
    table.add_column("Scheduled (UTC)", width=18)
    table.add_column("Status", width=13)
    table.add_column("Caption (preview)", width=40)

    for p in posts:
        table.add_row(
            p.id[:12],
            p.client_id,
            p.platform.value,
            p.post_type.value,
            format_dt(p.scheduled_at),
            f"{STATUS_STYLE.get(p.status.value, '')} {p.status.value}",
            preview(p.full_caption, 40),
        )
    console.print(table)


@app.command()
def show(post_id: str = typer.Argument(..., help="Post ID")) -> None:
    """Show one post in full."""
    with Pipeline.from_settings() as pipeline:
        try:
            post = pipeline.service.get(post_id)
        except NotFoundError as exc:
            rprint(f"[red]{exc}[/red]")
            raise typer.Exit(1)

    lines = [
        f"[bold]Client:[/bold]    {post.client_id}",
        f"[bold]Platform:[/bold]  {post.platform.value} ({post.post_type.value})",
        f"[bold]Scheduled:[/bold] {format_dt(post.scheduled_at)} UTC",
        f"[bold]Status:[/bold]    {STATUS_STYLE.get(post.status.value, '')} {post.status.value}",
    ]
    if post.platform_post_id:
        lines.append(f"[bold]Platform ID:[/bold] {post.platform_post_id}")
    if post.published_at:
        lines.append(f"[bold]Published:[/bold] {format_dt(post.published_at)} UTC")
    if post.error_message:
        lines.append(f"[bold red]Error:[/bold red]     {post.error_message}")
    for platform, outcome in post.platform_results.items():
        mark = "✓" if outcome.success else "✗"
        lines.append(f"  {mark} {platform.value}: {outcome.post_id or outcome.error}")
    for url in post.media_urls:
        lines.append(f"[dim]{url}[/dim]")
    lines.append("")
    lines.append(post.full_caption or "[dim](no caption)[/dim]")

    console.print(Panel("\n".join(lines), title=f"[bold]{post.id}[/bold]", border_style="cyan", expand=False))


# ---------------------------------------------------------------------------
# edit / retry
# ---------------------------------------------------------------------------


@app.command()
def edit(
    post_id: str = typer.Argument(..., help="Post ID"),
    caption: Optional[str] = typer.Option(None, "--caption", "-c"),
    hashtag: Optional[list[str]] = typer.Option(None, "--hashtag", help="Replaces all hashtags."),
    media_url: Optional[list[str]] = typer.Option(None, "--media-url", "-m", help="Replaces all media URLs."),
    time: Optional[str] = typer.Option(None, "--time", "-t", help="New scheduled time."),
) -> None:
    """Edit a post that has not been published yet."""
    changes: dict = {}
    if caption is not None:
        changes["caption"] = caption
    if hashtag:
        changes["hashtags"] = hashtag
    if media_url:
        changes["media_urls"] = media_url

    with Pipeline.from_settings() as pipeline:
        try:
            post = pipeline.service.edit(post_id, **changes)
            if time is not None:
                post = pipeline.service.reschedule(post_id, parse_time(time))
        except (NotFoundError, InvalidTransitionError, ValueError) as exc:
            rprint(f"[red]Cannot edit:[/red] {exc}")
            raise typer.Exit(1)

    rprint(f"[green]✓ Updated[/green] [cyan]{post.id}[/cyan] (scheduled {format_dt(post.scheduled_at)} UTC)")


@app.command()
def retry(
    post_id: str = typer.Argument(..., help="Failed post ID"),
    time: Optional[str] = typer.Option(None, "--time", "-t", help="New scheduled time (default: keep)."),
) -> None:
    """Re-arm a failed post so the next sweep publishes it."""
    scheduled_at = parse_time(time) if time else None
    with Pipeline.from_settings() as pipeline:
        try:
            post = pipeline.service.retry(post_id, scheduled_at)
        except (NotFoundError, InvalidTransitionError, ValueError) as exc:
            rprint(f"[red]Cannot retry:[/red] {exc}")
            raise typer.Exit(1)

    rprint(
        f"[green]✓ Re-armed[/green] [cyan]{post.id}[/cyan] for {format_dt(post.scheduled_at)} UTC\n"
        "[dim]Run [cyan]socialpub publish run-due[/cyan] to publish due posts.[/dim]"
    )
