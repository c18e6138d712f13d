"""
Request bodies and response shaping for the HTTP service.

Keys are camelCase on the wire; Python attributes stay snake_case.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from socialpub.connections.models import PlatformConnection
from socialpub.posts.models import Platform, PostStatus, PostType, ScheduledPost
from socialpub.publish.scheduler import SweepSummary
from socialpub.tokens.refresher import ExchangeResult, RefreshSummary, TokenCheck


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class PublishRequest(ApiModel):
    post_id: Optional[str] = None


class TokenRequest(ApiModel):
    action: Optional[str] = None
    access_token: Optional[str] = None
    client_id: Optional[str] = None
    platform: Optional[Platform] = None


class PostCreate(ApiModel):
    client_id: str
    platform: Platform
    scheduled_at: dt.datetime
    post_type: PostType = PostType.IMAGE
    media_urls: list[str] = []
    caption: Optional[str] = None
    hashtags: list[str] = []
    editorial_content_id: Optional[str] = None
    created_by: str = "system"


class PostPatch(ApiModel):
    caption: Optional[str] = None
    hashtags: Optional[list[str]] = None
    media_urls: Optional[list[str]] = None
    post_type: Optional[PostType] = None
    editorial_content_id: Optional[str] = None
    scheduled_at: Optional[dt.datetime] = None


class RetryRequest(ApiModel):
    scheduled_at: Optional[dt.datetime] = None


class ConnectionIn(ApiModel):
    client_id: str
    platform: Platform
    access_token: str
    token_expires_at: Optional[dt.datetime] = None
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    page_id: Optional[str] = None
    page_name: Optional[str] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def _iso(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def camelize(data: Any) -> Any:
    """Recursively rename dict keys to camelCase. Enum-keyed maps keep their keys."""
    if isinstance(data, dict):
        return {to_camel(k) if "_" in k else k: camelize(v) for k, v in data.items()}
    if isinstance(data, list):
        return [camelize(v) for v in data]
    return data


def post_out(post: ScheduledPost) -> dict:
    return camelize(post.to_dict())


def connection_out(connection: PlatformConnection) -> dict:
    """Connection view without the access token."""
    data = connection.model_dump(mode="json", exclude={"access_token"})
    return camelize(data)


def sweep_out(summary: SweepSummary) -> dict:
    results = []
    for item in summary.results:
        entry: dict[str, Any] = {"postId": item.post_id, "success": item.success}
        if item.error is not None:
            entry["error"] = item.error
        results.append(entry)
    return {
        "processed": summary.processed,
        "success": summary.succeeded,
        "failed": summary.failed,
        "skipped": summary.skipped,
        "results": results,
    }


def exchange_out(result: ExchangeResult) -> dict:
    body: dict[str, Any] = {
        "success": True,
        "longLivedToken": result.long_lived_token,
        "expiresAt": _iso(result.expires_at),
        "exchanged": result.exchanged,
    }
    if result.message:
        body["message"] = result.message
    return body


def refresh_out(summary: RefreshSummary) -> dict:
    results = []
    for item in summary.results:
        entry: dict[str, Any] = {
            "clientId": item.client_id,
            "platform": item.platform.value,
            "accountName": item.account_name,
            "success": item.success,
        }
        if item.error is not None:
            entry["error"] = item.error
        results.append(entry)
    return {
        "success": True,
        "refreshed": summary.refreshed,
        "total": summary.total,
        "results": results,
    }


def check_out(check: TokenCheck) -> dict:
    return {
        "success": True,
        "isValid": check.is_valid,
        "expiresAt": _iso(check.expires_at),
        "error": check.error,
    }


def stats_out(stats: dict[str, int]) -> dict:
    return {status.value: stats.get(status.value, 0) for status in PostStatus}
