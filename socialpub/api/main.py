"""
HTTP service.

Run with ``socialpub serve`` or ``uvicorn socialpub.api.main:app``.

Every error response has the body ``{"error": message}``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import Settings, settings as default_settings
from socialpub.api.routes.connections import router as connections_router
from socialpub.api.routes.functions import router as functions_router
from socialpub.api.routes.posts import router as posts_router
from socialpub.errors import (
    ConfigurationError,
    InvalidTransitionError,
    NotFoundError,
    SocialPubError,
)
from socialpub.pipeline import Pipeline

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    return f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return _error(400, _validation_message(exc))

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return _error(404, str(exc))

    @app.exception_handler(InvalidTransitionError)
    async def conflict(request: Request, exc: InvalidTransitionError):
        return _error(409, str(exc))

    @app.exception_handler(ConfigurationError)
    async def misconfigured(request: Request, exc: ConfigurationError):
        logger.error("Configuration error: %s", exc)
        return _error(500, str(exc))

    @app.exception_handler(SocialPubError)
    async def domain_error(request: Request, exc: SocialPubError):
        logger.error("Request failed: %s", exc)
        return _error(500, str(exc))

    @app.exception_handler(ValueError)
    async def bad_input(request: Request, exc: ValueError):
        return _error(400, str(exc))


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    if app.state.pipeline is not None:
        app.state.pipeline.close()
        app.state.pipeline = None


def create_app(cfg: Optional[Settings] = None, pipeline: Optional[Pipeline] = None) -> FastAPI:
    """
    Build the FastAPI application.

    ``pipeline`` is built lazily from ``cfg`` on the first request unless one
    is passed in (tests pass their own).
    """
    app = FastAPI(title="socialpub", version="0.1.0", lifespan=_lifespan)
    app.state.settings = cfg or default_settings
    app.state.pipeline = pipeline

    _install_error_handlers(app)

    app.include_router(functions_router)
    app.include_router(posts_router)
    app.include_router(connections_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
