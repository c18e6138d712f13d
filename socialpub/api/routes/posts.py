from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from socialpub.api.auth import require_caller
from socialpub.api.deps import get_pipeline
from socialpub.api.schemas import PostCreate, PostPatch, RetryRequest, post_out, stats_out
from socialpub.pipeline import Pipeline
from socialpub.posts.models import PostStatus

router = APIRouter(prefix="/posts", tags=["Scheduled Posts"], dependencies=[Depends(require_caller)])


@router.post("", status_code=201)
def create_post(body: PostCreate, pipeline: Pipeline = Depends(get_pipeline)):
    post = pipeline.service.schedule(
        body.client_id,
        body.platform,
        body.scheduled_at,
        post_type=body.post_type,
        media_urls=body.media_urls,
        caption=body.caption,
        hashtags=body.hashtags,
        editorial_content_id=body.editorial_content_id,
        created_by=body.created_by,
    )
    return post_out(post)


@router.get("")
def list_posts(
    client_id: Optional[str] = Query(None, alias="clientId"),
    status: Optional[PostStatus] = None,
    limit: int = 100,
    pipeline: Pipeline = Depends(get_pipeline),
):
    posts = pipeline.service.list_posts(client_id=client_id, status=status, limit=limit)
    return {"posts": [post_out(p) for p in posts]}


@router.get("/stats")
def post_stats(pipeline: Pipeline = Depends(get_pipeline)):
    return stats_out(pipeline.service.stats())


@router.get("/{post_id}")
def get_post(post_id: str, pipeline: Pipeline = Depends(get_pipeline)):
    return post_out(pipeline.service.get(post_id))


@router.patch("/{post_id}")
def update_post(post_id: str, body: PostPatch, pipeline: Pipeline = Depends(get_pipeline)):
    """Edit content and/or move the time of a post that is still scheduled."""
    changes = body.model_dump(exclude_unset=True)
    scheduled_at = changes.pop("scheduled_at", None)

    post = pipeline.service.edit(post_id, **changes) if changes else pipeline.service.get(post_id)
    if scheduled_at is not None:
        post = pipeline.service.reschedule(post_id, scheduled_at)
    return post_out(post)


@router.post("/{post_id}/retry")
def retry_post(
    post_id: str,
    body: Optional[RetryRequest] = None,
    pipeline: Pipeline = Depends(get_pipeline),
):
    scheduled_at = body.scheduled_at if body else None
    return post_out(pipeline.service.retry(post_id, scheduled_at))
