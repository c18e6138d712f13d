"""Helpers shared by the CLI sub-apps."""

from __future__ import annotations

import datetime as dt
from typing import Optional

import typer
from rich import print as rprint

from socialpub.posts.models import as_utc

STATUS_STYLE = {
    "scheduled": "⏳",
    "publishing": "⚙️ ",
    "published": "✅",
    "failed": "❌",
}


def parse_time(value: str, option: str = "--time") -> dt.datetime:
    """Parse an ISO 8601 datetime; naive values are UTC."""
    try:
        return as_utc(dt.datetime.fromisoformat(value))
    except ValueError:
        rprint(
            f"[red]Invalid {option} format:[/red] {value!r}. "
            "Use ISO 8601, e.g. 2026-03-01T10:00"
        )
        raise typer.Exit(1)


def format_dt(value: Optional[dt.datetime]) -> str:
    if value is None:
        return "-"
    return value.strftime("%d/%m/%Y %H:%M")


def preview(text: Optional[str], width: int = 45) -> str:
    text = (text or "").replace("\n", " ")
    return (text[:width] + "…") if len(text) > width else text
