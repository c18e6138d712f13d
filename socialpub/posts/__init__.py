"""
Posts package: ScheduledPost model, SQLite store, management service.
"""

from socialpub.posts.models import Platform, PostStatus, PostType, ScheduledPost
from socialpub.posts.service import PostService
from socialpub.posts.store import PostStore

__all__ = [
    "Platform",
    "PostStatus",
    "PostType",
    "ScheduledPost",
    "PostStore",
    "PostService",
]
