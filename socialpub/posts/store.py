"""
SQLite-backed store for scheduled posts.

Table: scheduled_posts
  id                    TEXT PK
  client_id             TEXT
  platform              TEXT  (instagram | facebook | both)
  post_type             TEXT  (image | video | carousel | reel | story)
  media_urls            TEXT  (JSON list)
  caption               TEXT
  hashtags              TEXT  (JSON list)
  scheduled_at          TEXT  (ISO 8601, UTC, fixed width)
  status                TEXT  scheduled | publishing | published | failed
  published_at          TEXT
  platform_post_id      TEXT
  error_message         TEXT
  platform_results      TEXT  (JSON object keyed by platform)
  editorial_content_id  TEXT
  created_by            TEXT
  created_at            TEXT
  updated_at            TEXT

Status changes go through ``transition()``, a single conditional UPDATE, so
two publishers racing for the same post cannot both claim it. Only the moves
listed in ``ALLOWED_TRANSITIONS`` are accepted.

One store holds one SQLite connection. Every operation runs under the
store's lock, so a store can be shared by the API threadpool.
"""

from __future__ import annotations

import datetime as dt
import functools
import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, TypeVar

import sqlite_utils

from socialpub.errors import InvalidTransitionError, NotFoundError
from socialpub.posts.models import (
    ALLOWED_TRANSITIONS,
    Platform,
    PlatformOutcome,
    PostStatus,
    PostType,
    ScheduledPost,
    as_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

_MAX_ERROR_LENGTH = 500


def to_iso(value: Optional[dt.datetime]) -> Optional[str]:
    """Fixed-width UTC ISO string, so string order equals time order."""
    if value is None:
        return None
    return as_utc(value).isoformat(timespec="microseconds")


def open_database(db_path: Path) -> sqlite_utils.Database:
    """Open a sqlite-utils database that may be handed between threads."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    return sqlite_utils.Database(conn)


F = TypeVar("F", bound=Callable[..., Any])


def synchronized(method: F) -> F:
    """Run a store method while holding the store's ``_lock``."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class PostStore:
    """
    Persistent scheduled-post table backed by SQLite.

    Usage::

        store = PostStore(Path("output/socialpub.db"))
        post = store.add(ScheduledPost(
            client_id="c1",
            platform=Platform.INSTAGRAM,
            scheduled_at=dt.datetime(2026, 3, 1, 10, 0, tzinfo=dt.timezone.utc),
            media_urls=["https://example.com/img.jpg"],
        ))
        due = store.list_due()
    """

    TABLE = "scheduled_posts"

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.RLock()
        self._db = open_database(db_path)
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _ensure_schema(self) -> None:
        if self.TABLE not in self._db.table_names():
            self._db[self.TABLE].create(
                {
                    "id": str,
                    "client_id": str,
                    "platform": str,
                    "post_type": str,
                    "media_urls": str,
                    "caption": str,
                    "hashtags": str,
                    "scheduled_at": str,
                    "status": str,
                    "published_at": str,
                    "platform_post_id": str,
                    "error_message": str,
                    "platform_results": str,
                    "editorial_content_id": str,
                    "created_by": str,
                    "created_at": str,
                    "updated_at": str,
                },
                pk="id",
                not_null={"id", "client_id", "platform", "status", "scheduled_at"},
            )
            self._db[self.TABLE].create_index(["status", "scheduled_at"])
            self._db[self.TABLE].create_index(["client_id"])
            logger.debug("Created %s table", self.TABLE)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @synchronized
    def add(self, post: ScheduledPost) -> ScheduledPost:
        """Persist a new post and return it."""
        self._db[self.TABLE].insert(self._to_row(post))
        logger.info(
            "Scheduled post %s (client=%s) at %s on %s",
            post.id,
            post.client_id,
            to_iso(post.scheduled_at),
            post.platform.value,
        )
        return post

    @synchronized
    def get(self, post_id: str) -> Optional[ScheduledPost]:
        """Return a post by id, or None if not found."""
        try:
            row = self._db[self.TABLE].get(post_id)
        except sqlite_utils.db.NotFoundError:
            return None
        return self._from_row(row)

    def require(self, post_id: str) -> ScheduledPost:
        post = self.get(post_id)
        if post is None:
            raise NotFoundError(f"Post not found: {post_id}")
        return post

    def transition(
        self,
        post_id: str,
        from_statuses: Iterable[PostStatus],
        to_status: PostStatus,
        **fields: Any,
    ) -> bool:
        """
        Atomically move a post to ``to_status`` if it is in ``from_statuses``.

        Extra ``fields`` are written in the same statement. Returns True only
        when exactly one row changed.

        Raises:
            InvalidTransitionError: a ``from → to`` move is not in
                ``ALLOWED_TRANSITIONS``.
        """
        sources = list(from_statuses)
        for source in sources:
            if to_status not in ALLOWED_TRANSITIONS[source]:
                raise InvalidTransitionError(
                    f"Illegal status change {source.value} → {to_status.value}"
                )
        changed = self._conditional_update(post_id, sources, {**fields, "status": to_status})
        if changed:
            logger.debug("Post %s → %s", post_id, to_status.value)
        else:
            logger.debug(
                "Post %s not moved to %s (expected status in %s)",
                post_id,
                to_status.value,
                [s.value for s in sources],
            )
        return changed

    def update_if_scheduled(self, post_id: str, **fields: Any) -> bool:
        """
        Write content or time fields only while the post is still ``scheduled``.

        Returns False when the post is missing or a publisher has claimed it.
        """
        if "status" in fields:
            raise ValueError("Use transition() to change a post's status")
        return self._conditional_update(post_id, [PostStatus.SCHEDULED], fields)

    @synchronized
    def _conditional_update(
        self, post_id: str, statuses: list[PostStatus], fields: dict[str, Any]
    ) -> bool:
        updates = self._encode(fields)
        updates["updated_at"] = to_iso(utcnow())

        allowed = [s.value for s in statuses]
        assignments = ", ".join(f"[{col}] = ?" for col in updates)
        placeholders = ", ".join("?" for _ in allowed)
        sql = (
            f"UPDATE [{self.TABLE}] SET {assignments} "
            f"WHERE [id] = ? AND [status] IN ({placeholders})"
        )
        params = [*updates.values(), post_id, *allowed]

        with self._db.conn:
            cursor = self._db.execute(sql, params)
        return cursor.rowcount == 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @synchronized
    def list_due(self, now: Optional[dt.datetime] = None) -> list[ScheduledPost]:
        """Scheduled posts whose time has passed, earliest first."""
        cutoff = to_iso(now or utcnow())
        rows = self._db[self.TABLE].rows_where(
            "status = ? AND scheduled_at <= ?",
            [PostStatus.SCHEDULED.value, cutoff],
            order_by="scheduled_at ASC, created_at ASC",
        )
        return [self._from_row(r) for r in rows]

    @synchronized
    def list_posts(
        self,
        client_id: Optional[str] = None,
        status: Optional[PostStatus] = None,
        limit: int = 100,
    ) -> list[ScheduledPost]:
        """Posts ordered by scheduled time, optionally filtered."""
        clauses: list[str] = []
        args: list[str] = []
        if client_id:
            clauses.append("client_id = ?")
            args.append(client_id)
        if status:
            clauses.append("status = ?")
            args.append(status.value)
        rows = self._db[self.TABLE].rows_where(
            " AND ".join(clauses) or None,
            args,
            order_by="scheduled_at ASC",
            limit=limit,
        )
        return [self._from_row(r) for r in rows]

    @synchronized
    def stats(self) -> dict[str, int]:
        """Return count per status."""
        result: dict[str, int] = {}
        for row in self._db.execute(
            f"SELECT status, COUNT(*) FROM [{self.TABLE}] GROUP BY status"
        ).fetchall():
            result[row[0]] = row[1]
        return result

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _encode(fields: dict[str, Any]) -> dict[str, Any]:
        """Convert model-level values into column values."""
        row: dict[str, Any] = {}
        for key, value in fields.items():
            if key in ("media_urls", "hashtags"):
                row[key] = json.dumps(list(value or []))
            elif key == "platform_results":
                row[key] = json.dumps(
                    {
                        Platform(p).value: PlatformOutcome.model_validate(o).model_dump()
                        for p, o in (value or {}).items()
                    }
                )
            elif key == "error_message" and value is not None:
                row[key] = str(value)[:_MAX_ERROR_LENGTH]
            elif isinstance(value, dt.datetime):
                row[key] = to_iso(value)
            elif isinstance(value, (PostStatus, PostType, Platform)):
                row[key] = value.value
            else:
                row[key] = value
        return row

    @classmethod
    def _to_row(cls, post: ScheduledPost) -> dict:
        return cls._encode(
            {
                "id": post.id,
                "client_id": post.client_id,
                "platform": post.platform,
                "post_type": post.post_type,
                "media_urls": post.media_urls,
                "caption": post.caption,
                "hashtags": post.hashtags,
                "scheduled_at": post.scheduled_at,
                "status": post.status,
                "published_at": post.published_at,
                "platform_post_id": post.platform_post_id,
                "error_message": post.error_message,
                "platform_results": post.platform_results,
                "editorial_content_id": post.editorial_content_id,
                "created_by": post.created_by,
                "created_at": post.created_at,
                "updated_at": post.updated_at,
            }
        )

    @staticmethod
    def _from_row(row: dict) -> ScheduledPost:
        return ScheduledPost(
            id=row["id"],
            client_id=row["client_id"],
            platform=row["platform"],
            post_type=row["post_type"],
            media_urls=json.loads(row["media_urls"] or "[]"),
            caption=row["caption"],
            hashtags=json.loads(row["hashtags"] or "[]"),
            scheduled_at=dt.datetime.fromisoformat(row["scheduled_at"]),
            status=row["status"],
            published_at=(
                dt.datetime.fromisoformat(row["published_at"])
                if row["published_at"]
                else None
            ),
            platform_post_id=row["platform_post_id"],
            error_message=row["error_message"],
            platform_results=json.loads(row["platform_results"] or "{}"),
            editorial_content_id=row["editorial_content_id"],
            created_by=row["created_by"] or "system",
            created_at=dt.datetime.fromisoformat(row["created_at"]),
            updated_at=dt.datetime.fromisoformat(row["updated_at"]),
        )

    # ------------------------------------------------------------------
    # Context manager / cleanup
    # ------------------------------------------------------------------

    @synchronized
    def close(self) -> None:
        self._db.close()

    def __enter__(self) -> "PostStore":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
