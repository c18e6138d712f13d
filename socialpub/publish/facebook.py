"""
Facebook Page publish adapter.

  media present  → POST /{page_id}/photos  {url, message}   → post_id | id
  no media       → POST /{page_id}/feed    {message}        → id

Only the first media URL is posted; pages take one photo per call.
"""

from __future__ import annotations

import logging

from socialpub.connections.models import PlatformConnection
from socialpub.errors import PublishError
from socialpub.posts.models import Platform
from socialpub.publish.base import PostContent, PublishAdapter
from socialpub.publish.graph import GraphClient

logger = logging.getLogger(__name__)


class FacebookAdapter(PublishAdapter):
    """Publishes photo or text posts to the connected Facebook page."""

    platform = Platform.FACEBOOK

    def __init__(self, graph: GraphClient) -> None:
        self.graph = graph

    def post_photo(self, page_id: str, token: str, image_url: str, message: str) -> str:
        body = self.graph.post(
            f"/{page_id}/photos",
            {"url": image_url, "message": message},
            token=token,
        )
        post_id = self._post_id(body)
        logger.info("Posted photo to page %s → %s", page_id, post_id)
        return post_id

    def post_text(self, page_id: str, token: str, message: str) -> str:
        body = self.graph.post(f"/{page_id}/feed", {"message": message}, token=token)
        post_id = self._post_id(body)
        logger.info("Posted text to page %s → %s", page_id, post_id)
        return post_id

    def publish(self, connection: PlatformConnection, content: PostContent) -> str:
        page_id = connection.page_id
        if not page_id:
            raise PublishError("Facebook page ID not found")
        if content.media_urls:
            return self.post_photo(page_id, connection.access_token, content.media_urls[0], content.caption)
        return self.post_text(page_id, connection.access_token, content.caption)

    @staticmethod
    def _post_id(body: dict) -> str:
        value = body.get("post_id") or body.get("id")
        if not value:
            raise PublishError("Facebook response has no post id")
        return str(value)
