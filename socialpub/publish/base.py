"""Adapter interface: one implementation per concrete platform."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from socialpub.connections.models import PlatformConnection
from socialpub.posts.models import Platform, PostType


@dataclass(frozen=True)
class PostContent:
    """Platform-neutral content handed to an adapter."""

    caption: str
    post_type: PostType
    media_urls: list[str] = field(default_factory=list)


class PublishAdapter(ABC):
    """Publishes content to one platform and returns the platform post id."""

    platform: Platform

    @abstractmethod
    def publish(self, connection: PlatformConnection, content: PostContent) -> str:
        """
        Run the platform's call sequence.

        Raises:
            PublishError: on any platform error payload or transport failure.
        """
        ...
