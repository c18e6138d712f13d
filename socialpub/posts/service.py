"""
Post management.

High-level API used by the CLI and the HTTP layer:
  - schedule a new post
  - list / fetch posts
  - edit content or reschedule while a post is still ``scheduled``
  - explicit retry of a ``failed`` post
  - status statistics
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Optional

from pydantic import ValidationError

from socialpub.errors import InvalidTransitionError
from socialpub.posts.models import Platform, PostStatus, PostType, ScheduledPost
from socialpub.posts.store import PostStore

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = {"caption", "hashtags", "media_urls", "post_type", "editorial_content_id"}


class PostService:
    """Scheduling workflow built on top of PostStore."""

    def __init__(self, store: PostStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def schedule(
        self,
        client_id: str,
        platform: Platform,
        scheduled_at: dt.datetime,
        *,
        post_type: PostType = PostType.IMAGE,
        media_urls: Optional[list[str]] = None,
        caption: Optional[str] = None,
        hashtags: Optional[list[str]] = None,
        editorial_content_id: Optional[str] = None,
        created_by: str = "system",
    ) -> ScheduledPost:
        """Create a post in ``scheduled`` state."""
        post = ScheduledPost(
            client_id=client_id,
            platform=platform,
            post_type=post_type,
            media_urls=media_urls or [],
            caption=caption,
            hashtags=hashtags or [],
            scheduled_at=scheduled_at,
            editorial_content_id=editorial_content_id,
            created_by=created_by,
        )
        return self.store.add(post)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def get(self, post_id: str) -> ScheduledPost:
        return self.store.require(post_id)

    def list_posts(
        self,
        client_id: Optional[str] = None,
        status: Optional[PostStatus] = None,
        limit: int = 100,
    ) -> list[ScheduledPost]:
        return self.store.list_posts(client_id=client_id, status=status, limit=limit)

    def stats(self) -> dict[str, int]:
        return self.store.stats()

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def edit(self, post_id: str, **changes: Any) -> ScheduledPost:
        """
        Change content fields of a ``scheduled`` post.

        Accepts caption, hashtags, media_urls, post_type and
        editorial_content_id. The result must still be a valid post (e.g. an
        image post keeps at least one media URL).
        """
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")

        post = self._require_scheduled(post_id, "edit")
        if not changes:
            return post
        self._validate(post, changes)
        updated = self._write_if_scheduled(post_id, "edit", changes)
        logger.info("Edited post %s: %s", post_id, ", ".join(sorted(changes)))
        return updated

    def reschedule(self, post_id: str, scheduled_at: dt.datetime) -> ScheduledPost:
        """Move a ``scheduled`` post to a new time."""
        post = self._require_scheduled(post_id, "reschedule")
        self._validate(post, {"scheduled_at": scheduled_at})
        updated = self._write_if_scheduled(post_id, "reschedule", {"scheduled_at": scheduled_at})
        logger.info("Rescheduled post %s to %s", post_id, updated.scheduled_at.isoformat())
        return updated

    def retry(self, post_id: str, scheduled_at: Optional[dt.datetime] = None) -> ScheduledPost:
        """
        Re-arm a ``failed`` post (failed → scheduled).

        The error message is cleared. Per-platform successes are kept so a
        partially published "both" post is not posted twice.
        """
        post = self.store.require(post_id)
        fields: dict[str, Any] = {"error_message": None}
        if scheduled_at is not None:
            self._validate(post, {"scheduled_at": scheduled_at})
            fields["scheduled_at"] = scheduled_at
        if not self.store.transition(post_id, [PostStatus.FAILED], PostStatus.SCHEDULED, **fields):
            raise InvalidTransitionError(
                f"Only failed posts can be retried (post {post_id} is {post.status.value})"
            )
        logger.info("Post %s re-armed for publishing", post_id)
        return self.store.require(post_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_scheduled(self, post_id: str, action: str) -> ScheduledPost:
        post = self.store.require(post_id)
        if post.status != PostStatus.SCHEDULED:
            raise InvalidTransitionError(
                f"Cannot {action} post {post_id}: status is {post.status.value}"
            )
        return post

    def _write_if_scheduled(self, post_id: str, action: str, fields: dict[str, Any]) -> ScheduledPost:
        # Conditional write: a publisher may have claimed the post since it was read.
        if not self.store.update_if_scheduled(post_id, **fields):
            post = self.store.require(post_id)
            raise InvalidTransitionError(
                f"Cannot {action} post {post_id}: status is {post.status.value}"
            )
        return self.store.require(post_id)

    @staticmethod
    def _validate(post: ScheduledPost, changes: dict[str, Any]) -> None:
        """Re-run model validation on the would-be post."""
        data = post.model_dump()
        data.update(changes)
        try:
            ScheduledPost.model_validate(data)
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc
