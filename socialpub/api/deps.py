"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

import threading

from fastapi import Request

from socialpub.pipeline import Pipeline

_lock = threading.Lock()


def get_pipeline(request: Request) -> Pipeline:
    """The app's pipeline, built from its settings on first use."""
    state = request.app.state
    if state.pipeline is None:
        with _lock:
            if state.pipeline is None:
                state.pipeline = Pipeline.from_settings(state.settings)
    return state.pipeline
