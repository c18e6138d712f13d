"""Logging setup shared by the CLI, the HTTP service and the worker."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Route the root logger through rich. Safe to call more than once."""
    global _configured
    root = logging.getLogger()
    root.setLevel(level.upper())
    if _configured:
        return

    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)

    # httpx logs full request URLs, which carry access tokens.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
