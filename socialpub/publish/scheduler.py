"""
Due-post sweeper.

A sweep lists every ``scheduled`` post whose ``scheduled_at`` has passed,
earliest first, and runs the publisher on each in turn. One post failing
never stops the sweep. The sweeper itself writes nothing; all status changes
happen inside :class:`~socialpub.publish.publisher.Publisher`.

Sweeps are triggered from outside (HTTP call, ``socialpub publish run-due``,
or the APScheduler worker). Two overlapping sweeps may both list the same
post, but only one of them can claim it.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from socialpub.posts.models import ScheduledPost, utcnow
from socialpub.posts.store import PostStore
from socialpub.publish.publisher import Publisher

logger = logging.getLogger(__name__)


@dataclass
class SweepItem:
    post_id: str
    success: bool
    error: Optional[str] = None
    skipped: bool = False


@dataclass
class SweepSummary:
    """Aggregate of one sweep, in processing order."""

    results: list[SweepItem] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)


class DuePostSweeper:
    """Runs the publisher over every due post, sequentially."""

    def __init__(
        self,
        posts: PostStore,
        publisher: Publisher,
        *,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self.posts = posts
        self.publisher = publisher
        self._clock = clock

    def due_posts(self, now: Optional[dt.datetime] = None) -> list[ScheduledPost]:
        return self.posts.list_due(now or self._clock())

    def run(self, now: Optional[dt.datetime] = None) -> SweepSummary:
        now = now or self._clock()
        due = self.due_posts(now)
        summary = SweepSummary()

        if not due:
            logger.info("No due posts at %s", now.isoformat())
            return summary

        logger.info("Found %d due post(s)", len(due))
        for post in due:
            logger.info(
                "Publishing post %s (%s) scheduled for %s",
                post.id,
                post.platform.value,
                post.scheduled_at.isoformat(),
            )
            try:
                result = self.publisher.publish(post.id)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Error publishing post %s", post.id)
                summary.results.append(SweepItem(post.id, success=False, error=str(exc)))
                continue
            summary.results.append(
                SweepItem(
                    post.id,
                    success=result.success,
                    error=result.error,
                    skipped=result.skipped,
                )
            )

        logger.info(
            "Sweep done. Success: %d, Failed: %d", summary.succeeded, summary.failed
        )
        return summary
