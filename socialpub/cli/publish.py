"""
Publishing commands.

  socialpub publish now     <post-id>      publish one scheduled post immediately
  socialpub publish run-due [--dry-run]    publish every due post, earliest first
"""

from __future__ import annotations

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from socialpub.cli.common import format_dt, preview
from socialpub.errors import NotFoundError
from socialpub.pipeline import Pipeline

console = Console()
app = typer.Typer(help="Publish scheduled posts to Instagram and Facebook.")


@app.command()
def now(post_id: str = typer.Argument(..., help="Post ID to publish")) -> None:
    """Publish a scheduled post now, ignoring its scheduled time."""
    with Pipeline.from_settings() as pipeline:
        with console.status("[bold]Publishing…"):
            try:
                result = pipeline.publisher.publish(post_id)
            except NotFoundError as exc:
                rprint(f"[red]{exc}[/red]")
                raise typer.Exit(1)

    if result.success:
        rprint(
            f"\n[green]✓ Published[/green] [cyan]{post_id}[/cyan]\n"
            f"  Platform post ID : [cyan]{result.platform_post_id}[/cyan]"
        )
        return
    if result.skipped:
        rprint(f"[yellow]Skipped:[/yellow] {result.error}")
    else:
        rprint(f"[red]✗ Failed:[/red] {result.error}")
    raise typer.Exit(1)


@app.command("run-due")
def run_due(
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would run, without posting."),
) -> None:
    """Publish every post whose scheduled time has passed."""
    with Pipeline.from_settings() as pipeline:
        if dry_run:
            due = pipeline.sweeper.due_posts()
            if not due:
                rprint("[green]✓ No posts due.[/green]")
                return
            rprint(f"[bold]{len(due)} post(s) due:[/bold]")
            for post in due:
                rprint(
                    f"  [cyan]{post.id}[/cyan]  client={post.client_id}  "
                    f"platform={post.platform.value}  scheduled={format_dt(post.scheduled_at)}  "
                    f"[dim]{preview(post.full_caption, 40)}[/dim]"
                )
            rprint("[yellow][DRY RUN] nothing was published[/yellow]")
            return

        summary = pipeline.sweeper.run()

    if not summary.processed:
        rprint("[green]✓ No posts due.[/green]")
        return

    table = Table(title=f"Sweep: {summary.succeeded} published, {summary.failed} failed")
    table.add_column("Post", style="cyan")
    table.add_column("Result")
    table.add_column("Error")
    for item in summary.results:
        if item.success:
            mark = "[green]✓ published[/green]"
        elif item.skipped:
            mark = "[yellow]skipped[/yellow]"
        else:
            mark = "[red]✗ failed[/red]"
        table.add_row(item.post_id, mark, item.error or "")
    console.print(table)
