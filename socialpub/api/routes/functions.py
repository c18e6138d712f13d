"""
Pipeline endpoints: sweep, single publish, token maintenance.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from socialpub.api.auth import require_caller
from socialpub.api.deps import get_pipeline
from socialpub.api.schemas import (
    PublishRequest,
    TokenRequest,
    check_out,
    exchange_out,
    refresh_out,
    sweep_out,
)
from socialpub.errors import ConfigurationError
from socialpub.pipeline import Pipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pipeline"], dependencies=[Depends(require_caller)])

INVALID_ACTION = 'Invalid action. Use "exchange", "refresh", or "check".'


@router.post("/social-scheduler")
def run_sweep(pipeline: Pipeline = Depends(get_pipeline)):
    """Publish every due post, earliest first."""
    summary = pipeline.sweeper.run()
    return sweep_out(summary)


@router.post("/social-publish")
def publish_post(
    payload: Optional[PublishRequest] = None,
    pipeline: Pipeline = Depends(get_pipeline),
):
    """Publish one post now, regardless of its scheduled time."""
    if payload is None or not payload.post_id:
        raise HTTPException(status_code=400, detail="postId is required")

    result = pipeline.publisher.publish(payload.post_id)
    if result.success:
        return {"success": True, "platformPostId": result.platform_post_id}
    if result.connection_missing:
        status_code = 404
    elif result.skipped:
        status_code = 409
    else:
        status_code = 500
    return JSONResponse(status_code=status_code, content={"error": result.error})


@router.post("/meta-token-refresh")
def token_maintenance(
    payload: Optional[TokenRequest] = None,
    pipeline: Pipeline = Depends(get_pipeline),
):
    """
    Token actions:
      - exchange: {accessToken, clientId?, platform?}
      - refresh:  re-exchange every token expiring soon
      - check:    {clientId, platform?}
    """
    payload = payload or TokenRequest()
    refresher = pipeline.refresher
    if not refresher.configured:
        raise ConfigurationError("Meta App credentials not configured")

    if payload.action == "exchange":
        if not payload.access_token:
            raise HTTPException(status_code=400, detail="accessToken is required for exchange")
        result = refresher.exchange(payload.access_token, payload.client_id, payload.platform)
        return exchange_out(result)

    if payload.action == "refresh":
        return refresh_out(refresher.refresh_expiring())

    if payload.action == "check":
        if not payload.client_id:
            raise HTTPException(status_code=400, detail="clientId is required")
        return check_out(refresher.check(payload.client_id, payload.platform))

    raise HTTPException(status_code=400, detail=INVALID_ACTION)
