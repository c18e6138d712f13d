"""
Main CLI entry point.
Usage: socialpub [COMMAND]
"""

from typing import Optional

import typer
from rich.console import Console

from config.settings import settings
from socialpub.cli.connections import app as connections_app
from socialpub.cli.posts import app as posts_app
from socialpub.cli.publish import app as publish_app
from socialpub.cli.tokens import app as tokens_app
from socialpub.log import setup_logging

app = typer.Typer(
    name="socialpub",
    help="📅 Scheduled publishing to Instagram and Facebook",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
)

console = Console()

# Register sub-apps
app.add_typer(posts_app, name="posts", help="📝 Schedule, edit and retry posts")
app.add_typer(publish_app, name="publish", help="📤 Publish now or run due posts")
app.add_typer(tokens_app, name="tokens", help="🔑 Exchange, refresh and check Meta tokens")
app.add_typer(connections_app, name="connections", help="🔗 Manage client connections")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
) -> None:
    setup_logging(log_level or settings.log_level)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    reload: bool = typer.Option(False, "--reload"),
) -> None:
    """Run the HTTP service."""
    import uvicorn

    console.print(f"[bold]Serving on[/bold] http://{host or settings.api_host}:{port or settings.api_port}")
    uvicorn.run(
        "socialpub.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_config=None,
    )


@app.command()
def worker() -> None:
    """Run the periodic sweep and token refresh until interrupted."""
    from socialpub.worker import start

    start(settings)


if __name__ == "__main__":
    app()
