"""
Scheduled post data models.

State machine:
  scheduled → publishing → published
       │           └─────→ failed → scheduled (explicit retry)
       └─────────────────→ failed   (connection missing, never claimed)
"""

from __future__ import annotations

import datetime as dt
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: dt.datetime) -> dt.datetime:
    """Normalise a datetime to UTC; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Platform(str, Enum):
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    BOTH = "both"           # publish to instagram, then facebook

    @property
    def targets(self) -> list["Platform"]:
        """Concrete platforms a post on this platform is dispatched to."""
        if self is Platform.BOTH:
            return [Platform.INSTAGRAM, Platform.FACEBOOK]
        return [self]


class PostType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    CAROUSEL = "carousel"
    REEL = "reel"
    STORY = "story"

    @property
    def requires_media(self) -> bool:
        return self is not PostType.STORY

    @property
    def is_video(self) -> bool:
        return self in (PostType.VIDEO, PostType.REEL)


class PostStatus(str, Enum):
    SCHEDULED = "scheduled"     # waiting for its time
    PUBLISHING = "publishing"   # claimed by a publisher
    PUBLISHED = "published"     # terminal
    FAILED = "failed"           # terminal until an explicit retry


ALLOWED_TRANSITIONS: dict[PostStatus, set[PostStatus]] = {
    PostStatus.SCHEDULED: {PostStatus.PUBLISHING, PostStatus.FAILED},
    PostStatus.PUBLISHING: {PostStatus.PUBLISHED, PostStatus.FAILED},
    PostStatus.PUBLISHED: set(),
    PostStatus.FAILED: {PostStatus.SCHEDULED},
}


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


class PlatformOutcome(BaseModel):
    """Result of publishing a post to one concrete platform."""

    success: bool
    post_id: Optional[str] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Caption
# ---------------------------------------------------------------------------


def build_caption(caption: Optional[str], hashtags: Optional[list[str]]) -> str:
    """
    Caption sent to the platforms.

    Hashtags are space-joined and appended after a blank line::

        >>> build_caption("Hello", ["#a", "#b"])
        'Hello\\n\\n#a #b'
    """
    text = caption or ""
    tags = " ".join(t for t in (hashtags or []) if t)
    if not tags:
        return text
    if not text:
        return tags
    return f"{text}\n\n{tags}"


# ---------------------------------------------------------------------------
# ScheduledPost
# ---------------------------------------------------------------------------


class ScheduledPost(BaseModel):
    """A post queued for publishing at ``scheduled_at``."""

    # Identity
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    client_id: str
    created_by: str = "system"

    # Target
    platform: Platform
    post_type: PostType = PostType.IMAGE

    # Content
    media_urls: list[str] = Field(default_factory=list)
    caption: Optional[str] = None
    hashtags: list[str] = Field(default_factory=list)
    editorial_content_id: Optional[str] = None

    # Schedule / outcome
    scheduled_at: dt.datetime
    status: PostStatus = PostStatus.SCHEDULED
    published_at: Optional[dt.datetime] = None
    platform_post_id: Optional[str] = None
    error_message: Optional[str] = None
    platform_results: dict[Platform, PlatformOutcome] = Field(default_factory=dict)

    # Timestamps
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)

    @field_validator("scheduled_at", "published_at", "created_at", "updated_at")
    @classmethod
    def _normalise_tz(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return as_utc(v) if v is not None else None

    @field_validator("media_urls", "hashtags", mode="before")
    @classmethod
    def _none_to_list(cls, v: object) -> object:
        return [] if v is None else v

    @model_validator(mode="after")
    def _check_media(self) -> "ScheduledPost":
        if self.post_type.requires_media and not self.media_urls:
            raise ValueError(
                f"media_urls must not be empty for {self.post_type.value} posts"
            )
        return self

    @property
    def full_caption(self) -> str:
        return build_caption(self.caption, self.hashtags)

    def succeeded_on(self, platform: Platform) -> Optional[PlatformOutcome]:
        """The stored successful outcome for ``platform``, if any."""
        outcome = self.platform_results.get(platform)
        if outcome is not None and outcome.success:
            return outcome
        return None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
