"""
Instagram Graph API publish adapter.

Docs: https://developers.facebook.com/docs/instagram-api/guides/content-publishing

The connection supplies the access token and the Instagram business account
id (``connection.account_id``).

Flow (single image, story):
  1. POST /{ig_user_id}/media              → container_id
  2. POST /{ig_user_id}/media_publish      → post_id

Flow (carousel, up to 10 items):
  1. POST /{ig_user_id}/media for each URL (is_carousel_item=true)  → child_ids
  2. POST /{ig_user_id}/media with CAROUSEL + children=[child_ids]  → parent_id
  3. POST /{ig_user_id}/media_publish with creation_id=parent_id    → post_id

Flow (video / reel):
  1. POST /{ig_user_id}/media with VIDEO | REELS + video_url        → container_id
  2. wait for transcoding (fixed delay, or poll status_code)
  3. POST /{ig_user_id}/media_publish                               → post_id
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from socialpub.connections.models import PlatformConnection
from socialpub.errors import PublishError
from socialpub.posts.models import Platform, PostType
from socialpub.publish.base import PostContent, PublishAdapter
from socialpub.publish.graph import GraphClient

logger = logging.getLogger(__name__)

_CAROUSEL_MAX = 10

VIDEO_WAIT_FIXED = "fixed"
VIDEO_WAIT_POLL = "poll"


class InstagramAdapter(PublishAdapter):
    """
    Two-step container/publish flow for Instagram business accounts.

    Usage::

        adapter = InstagramAdapter(GraphClient())
        post_id = adapter.publish(connection, PostContent("Caption", PostType.IMAGE, [url]))
    """

    platform = Platform.INSTAGRAM

    def __init__(
        self,
        graph: GraphClient,
        *,
        video_wait: str = VIDEO_WAIT_FIXED,
        video_delay: float = 10.0,
        poll_interval: float = 5.0,
        poll_timeout: float = 300.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if video_wait not in (VIDEO_WAIT_FIXED, VIDEO_WAIT_POLL):
            raise ValueError(f"video_wait must be 'fixed' or 'poll', got {video_wait!r}")
        self.graph = graph
        self.video_wait = video_wait
        self.video_delay = video_delay
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Container creation
    # ------------------------------------------------------------------

    def create_image_container(
        self,
        account_id: str,
        token: str,
        image_url: str,
        caption: str = "",
        *,
        is_carousel_item: bool = False,
    ) -> str:
        """Create a single-image media container and return its id."""
        payload: dict = {"image_url": image_url}
        if is_carousel_item:
            payload["is_carousel_item"] = "true"
        else:
            payload["caption"] = caption

        body = self.graph.post(f"/{account_id}/media", payload, token=token)
        container_id = self._require_id(body, "image container")
        logger.info("Created image container: %s", container_id)
        return container_id

    def create_carousel_container(
        self,
        account_id: str,
        token: str,
        children_ids: list[str],
        caption: str = "",
    ) -> str:
        """Create a carousel parent container from existing child containers."""
        payload = {
            "media_type": "CAROUSEL",
            "caption": caption,
            "children": ",".join(children_ids),
        }
        body = self.graph.post(f"/{account_id}/media", payload, token=token)
        container_id = self._require_id(body, "carousel container")
        logger.info("Created carousel container: %s (%d children)", container_id, len(children_ids))
        return container_id

    def create_video_container(
        self,
        account_id: str,
        token: str,
        video_url: str,
        caption: str = "",
        *,
        reel: bool = False,
    ) -> str:
        """Create a VIDEO or REELS container. Transcoding happens asynchronously."""
        payload = {
            "video_url": video_url,
            "caption": caption,
            "media_type": "REELS" if reel else "VIDEO",
        }
        body = self.graph.post(f"/{account_id}/media", payload, token=token)
        container_id = self._require_id(body, "video container")
        logger.info("Created %s container: %s", payload["media_type"], container_id)
        return container_id

    def wait_until_ready(self, container_id: str, token: str) -> None:
        """
        Give the platform time to transcode a video container.

        ``fixed`` sleeps ``video_delay`` seconds and does not check anything;
        if transcoding takes longer, the publish step fails. ``poll`` reads the
        container's ``status_code`` until FINISHED or ``poll_timeout``.
        """
        if self.video_wait == VIDEO_WAIT_FIXED:
            self._sleep(self.video_delay)
            return

        waited = 0.0
        while True:
            body = self.graph.get(f"/{container_id}", {"fields": "status_code"}, token=token)
            status = body.get("status_code")
            if status in ("FINISHED", "PUBLISHED"):
                return
            if status in ("ERROR", "EXPIRED"):
                raise PublishError(f"Video container {container_id} processing {status.lower()}")
            if waited >= self.poll_timeout:
                raise PublishError(
                    f"Video container {container_id} not ready after {self.poll_timeout:.0f}s "
                    f"(status {status})"
                )
            self._sleep(self.poll_interval)
            waited += self.poll_interval

    def publish_container(self, account_id: str, token: str, container_id: str) -> str:
        """Publish a previously created container and return the media id."""
        body = self.graph.post(
            f"/{account_id}/media_publish",
            {"creation_id": container_id},
            token=token,
        )
        post_id = self._require_id(body, "media_publish")
        logger.info("Published container %s → post %s", container_id, post_id)
        return post_id

    # ------------------------------------------------------------------
    # PublishAdapter
    # ------------------------------------------------------------------

    def publish(self, connection: PlatformConnection, content: PostContent) -> str:
        account_id = connection.account_id
        if not account_id:
            raise PublishError("Instagram account ID not found")
        if not content.media_urls:
            raise PublishError("Instagram posts require at least one media URL")

        token = connection.access_token
        urls = content.media_urls

        if content.post_type == PostType.CAROUSEL and len(urls) > 1:
            return self._post_carousel(account_id, token, urls, content.caption)

        if content.post_type.is_video:
            container_id = self.create_video_container(
                account_id,
                token,
                urls[0],
                content.caption,
                reel=content.post_type == PostType.REEL,
            )
            self.wait_until_ready(container_id, token)
            return self.publish_container(account_id, token, container_id)

        container_id = self.create_image_container(account_id, token, urls[0], content.caption)
        return self.publish_container(account_id, token, container_id)

    def _post_carousel(self, account_id: str, token: str, urls: list[str], caption: str) -> str:
        if len(urls) > _CAROUSEL_MAX:
            raise PublishError(
                f"Instagram carousels support at most {_CAROUSEL_MAX} items (got {len(urls)})."
            )
        children = [
            self.create_image_container(account_id, token, url, is_carousel_item=True)
            for url in urls
        ]
        parent_id = self.create_carousel_container(account_id, token, children, caption)
        return self.publish_container(account_id, token, parent_id)

    @staticmethod
    def _require_id(body: dict, step: str) -> str:
        value = body.get("id")
        if not value:
            raise PublishError(f"Instagram {step} response has no id")
        return str(value)
