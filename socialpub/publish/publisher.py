"""
Publisher: takes one scheduled post through its status machine.

  1. load post                      (NotFoundError if absent)
  2. load connection per platform   (missing → scheduled → failed, no network)
  3. claim                          (scheduled → publishing, conditional write)
  4. build caption                  (caption + blank line + hashtags)
  5. dispatch to each adapter       (instagram, then facebook for "both")
  6/7. record outcome               (published | failed)

Adapter failures never escape ``publish()``; they become a ``failed`` post and
an unsuccessful :class:`PublishResult`.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from socialpub.connections.models import PlatformConnection
from socialpub.connections.store import ConnectionStore
from socialpub.errors import PublishError
from socialpub.posts.models import (
    Platform,
    PlatformOutcome,
    PostStatus,
    ScheduledPost,
    utcnow,
)
from socialpub.posts.store import PostStore
from socialpub.publish.base import PostContent, PublishAdapter

logger = logging.getLogger(__name__)


@dataclass
class PublishResult:
    """Outcome of one publish attempt. Not persisted as such."""

    post_id: str
    success: bool
    platform_post_id: Optional[str] = None
    error: Optional[str] = None
    status: Optional[PostStatus] = None
    # True when the post was not publishable (already claimed or terminal);
    # nothing was written and nothing was sent.
    skipped: bool = False
    connection_missing: bool = False
    platform_results: dict[Platform, PlatformOutcome] = field(default_factory=dict)


class Publisher:
    """
    Publishes scheduled posts through per-platform adapters.

    Usage::

        publisher = Publisher(posts, connections, [InstagramAdapter(graph), FacebookAdapter(graph)])
        result = publisher.publish("post-id")
    """

    def __init__(
        self,
        posts: PostStore,
        connections: ConnectionStore,
        adapters: Iterable[PublishAdapter],
        *,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self.posts = posts
        self.connections = connections
        self.adapters: dict[Platform, PublishAdapter] = {a.platform: a for a in adapters}
        self._clock = clock

    def publish(self, post_id: str) -> PublishResult:
        """
        Publish one post now, whatever its scheduled time.

        Only ``scheduled`` posts are published. Calling this on a published
        or failed post is a no-op that returns a skipped result; use an
        explicit retry to re-arm a failed post.

        Raises:
            NotFoundError: if the post does not exist.
        """
        post = self.posts.require(post_id)

        if post.status != PostStatus.SCHEDULED:
            logger.info("Post %s is %s, not scheduled, skipping", post.id, post.status.value)
            return self._skipped(post, f"Post is {post.status.value}, not scheduled")

        targets = post.platform.targets
        pending = [t for t in targets if post.succeeded_on(t) is None]

        connections: dict[Platform, PlatformConnection] = {}
        missing: list[str] = []
        for target in pending:
            connection = self.connections.get(post.client_id, target)
            if connection is None:
                missing.append(target.value)
            else:
                connections[target] = connection

        if missing:
            error = f"{' and '.join(missing).capitalize()} connection not found"
            logger.warning("Post %s: %s (client %s)", post.id, error, post.client_id)
            if not self.posts.transition(post.id, [PostStatus.SCHEDULED], PostStatus.FAILED, error_message=error):
                return self._skipped(post, "Post was claimed by another publisher")
            return PublishResult(
                post.id,
                success=False,
                error=error,
                status=PostStatus.FAILED,
                connection_missing=True,
            )

        if not self.posts.transition(post.id, [PostStatus.SCHEDULED], PostStatus.PUBLISHING):
            logger.info("Post %s was claimed by another publisher", post.id)
            return self._skipped(post, "Post was claimed by another publisher")

        logger.info("Publishing post %s (%s, %s)", post.id, post.platform.value, post.post_type.value)
        content = PostContent(
            caption=post.full_caption,
            post_type=post.post_type,
            media_urls=list(post.media_urls),
        )

        results = dict(post.platform_results)
        for target in targets:
            if target not in pending:
                logger.info("Post %s already published on %s, not re-posting", post.id, target.value)
                continue
            results[target] = self._dispatch(post, target, connections[target], content)

        return self._record(post, targets, results)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _dispatch(
        self,
        post: ScheduledPost,
        target: Platform,
        connection: PlatformConnection,
        content: PostContent,
    ) -> PlatformOutcome:
        adapter = self.adapters.get(target)
        try:
            if adapter is None:
                raise PublishError(f"No publish adapter for {target.value}")
            platform_post_id = adapter.publish(connection, content)
        except Exception as exc:  # noqa: BLE001
            message = str(exc) or exc.__class__.__name__
            logger.warning("Post %s failed on %s: %s", post.id, target.value, message)
            return PlatformOutcome(success=False, error=message)
        logger.info("Post %s published on %s as %s", post.id, target.value, platform_post_id)
        return PlatformOutcome(success=True, post_id=platform_post_id)

    def _record(
        self,
        post: ScheduledPost,
        targets: list[Platform],
        results: dict[Platform, PlatformOutcome],
    ) -> PublishResult:
        failures = [t for t in targets if not results[t].success]

        if not failures:
            platform_post_id = results[targets[0]].post_id
            self.posts.transition(
                post.id,
                [PostStatus.PUBLISHING],
                PostStatus.PUBLISHED,
                published_at=self._clock(),
                platform_post_id=platform_post_id,
                error_message=None,
                platform_results=results,
            )
            return PublishResult(
                post.id,
                success=True,
                platform_post_id=platform_post_id,
                status=PostStatus.PUBLISHED,
                platform_results=results,
            )

        if len(targets) == 1:
            error = results[targets[0]].error or "Publish failed"
        else:
            error = "; ".join(f"{t.value}: {results[t].error}" for t in failures)
        self.posts.transition(
            post.id,
            [PostStatus.PUBLISHING],
            PostStatus.FAILED,
            error_message=error,
            platform_results=results,
        )
        return PublishResult(
            post.id,
            success=False,
            error=error,
            status=PostStatus.FAILED,
            platform_results=results,
        )

    @staticmethod
    def _skipped(post: ScheduledPost, reason: str) -> PublishResult:
        return PublishResult(
            post.id,
            success=False,
            error=reason,
            status=post.status,
            skipped=True,
            platform_post_id=post.platform_post_id,
        )
