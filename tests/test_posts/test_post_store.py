"""
Tests for socialpub/posts/store.py
"""

from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from conftest import NOW, make_post
from socialpub.errors import InvalidTransitionError, NotFoundError
from socialpub.posts.models import Platform, PlatformOutcome, PostStatus
from socialpub.posts.store import PostStore, to_iso


class TestToIso:
    def test_fixed_width(self) -> None:
        a = to_iso(dt.datetime(2026, 3, 1, 10, 0, tzinfo=dt.timezone.utc))
        b = to_iso(dt.datetime(2026, 3, 1, 10, 0, 0, 123456, tzinfo=dt.timezone.utc))
        assert len(a) == len(b)
        assert a < b

    def test_none(self) -> None:
        assert to_iso(None) is None


class TestCrud:
    def test_add_and_get(self, post_store: PostStore) -> None:
        post = post_store.add(make_post(hashtags=["#a", "#b"]))
        loaded = post_store.get(post.id)
        assert loaded is not None
        assert loaded.hashtags == ["#a", "#b"]
        assert loaded.media_urls == post.media_urls
        assert loaded.scheduled_at == post.scheduled_at

    def test_get_missing_returns_none(self, post_store: PostStore) -> None:
        assert post_store.get("nope") is None

    def test_require_missing_raises(self, post_store: PostStore) -> None:
        with pytest.raises(NotFoundError, match="nope"):
            post_store.require("nope")

    def test_persists_across_instances(self, db_path: Path) -> None:
        with PostStore(db_path) as store:
            post = store.add(make_post())
        with PostStore(db_path) as store:
            assert store.get(post.id) is not None


class TestTransition:
    def test_claim_succeeds_once(self, db_path: Path) -> None:
        first = PostStore(db_path)
        second = PostStore(db_path)
        post = first.add(make_post())

        assert first.transition(post.id, [PostStatus.SCHEDULED], PostStatus.PUBLISHING)
        assert not second.transition(post.id, [PostStatus.SCHEDULED], PostStatus.PUBLISHING)
        assert second.require(post.id).status == PostStatus.PUBLISHING
        first.close()
        second.close()

    def test_writes_extra_fields(self, post_store: PostStore) -> None:
        post = post_store.add(make_post(platform=Platform.BOTH))
        post_store.transition(post.id, [PostStatus.SCHEDULED], PostStatus.PUBLISHING)
        post_store.transition(
            post.id,
            [PostStatus.PUBLISHING],
            PostStatus.PUBLISHED,
            published_at=NOW,
            platform_post_id="ig1",
            platform_results={Platform.INSTAGRAM: PlatformOutcome(success=True, post_id="ig1")},
        )
        loaded = post_store.require(post.id)
        assert loaded.status == PostStatus.PUBLISHED
        assert loaded.published_at == NOW
        assert loaded.platform_post_id == "ig1"
        assert loaded.platform_results[Platform.INSTAGRAM].post_id == "ig1"

    def test_error_message_truncated(self, post_store: PostStore) -> None:
        post = post_store.add(make_post())
        post_store.transition(
            post.id, [PostStatus.SCHEDULED], PostStatus.FAILED, error_message="x" * 2000
        )
        assert len(post_store.require(post.id).error_message) == 500

    def test_unknown_post_returns_false(self, post_store: PostStore) -> None:
        assert not post_store.transition("nope", [PostStatus.SCHEDULED], PostStatus.PUBLISHING)

    @pytest.mark.parametrize(
        "source, target",
        [
            (PostStatus.SCHEDULED, PostStatus.PUBLISHED),
            (PostStatus.SCHEDULED, PostStatus.SCHEDULED),
            (PostStatus.PUBLISHED, PostStatus.SCHEDULED),
            (PostStatus.PUBLISHING, PostStatus.SCHEDULED),
        ],
    )
    def test_illegal_move_rejected(
        self, post_store: PostStore, source: PostStatus, target: PostStatus
    ) -> None:
        post = post_store.add(make_post(status=source))

        with pytest.raises(InvalidTransitionError, match="Illegal status change"):
            post_store.transition(post.id, [source], target)

        assert post_store.require(post.id).status == source

    def test_failed_post_can_be_rearmed(self, post_store: PostStore) -> None:
        post = post_store.add(make_post(status=PostStatus.FAILED, error_message="boom"))

        assert post_store.transition(
            post.id, [PostStatus.FAILED], PostStatus.SCHEDULED, error_message=None
        )
        assert post_store.require(post.id).error_message is None


class TestUpdateIfScheduled:
    def test_writes_fields_of_scheduled_post(self, post_store: PostStore) -> None:
        post = post_store.add(make_post())

        assert post_store.update_if_scheduled(post.id, caption="new", hashtags=["#x"])

        loaded = post_store.require(post.id)
        assert loaded.caption == "new"
        assert loaded.hashtags == ["#x"]
        assert loaded.status == PostStatus.SCHEDULED

    def test_claimed_post_untouched(self, post_store: PostStore) -> None:
        post = post_store.add(make_post(caption="old"))
        post_store.transition(post.id, [PostStatus.SCHEDULED], PostStatus.PUBLISHING)

        assert not post_store.update_if_scheduled(post.id, caption="new")
        assert post_store.require(post.id).caption == "old"

    def test_status_not_accepted(self, post_store: PostStore) -> None:
        post = post_store.add(make_post())

        with pytest.raises(ValueError, match="transition"):
            post_store.update_if_scheduled(post.id, status=PostStatus.PUBLISHED)


class TestQueries:
    def test_list_due_orders_by_scheduled_at(self, post_store: PostStore) -> None:
        t3 = post_store.add(make_post(scheduled_at=NOW - dt.timedelta(minutes=1)))
        t1 = post_store.add(make_post(scheduled_at=NOW - dt.timedelta(minutes=30)))
        t2 = post_store.add(make_post(scheduled_at=NOW - dt.timedelta(minutes=10)))
        post_store.add(make_post(scheduled_at=NOW + dt.timedelta(minutes=10)))

        due = post_store.list_due(NOW)

        assert [p.id for p in due] == [t1.id, t2.id, t3.id]

    def test_list_due_includes_exact_time(self, post_store: PostStore) -> None:
        post = post_store.add(make_post(scheduled_at=NOW))
        assert [p.id for p in post_store.list_due(NOW)] == [post.id]

    def test_list_due_skips_non_scheduled(self, post_store: PostStore) -> None:
        post_store.add(make_post(status=PostStatus.FAILED))
        post_store.add(make_post(status=PostStatus.PUBLISHED))
        assert post_store.list_due(NOW) == []

    def test_list_posts_filters(self, post_store: PostStore) -> None:
        post_store.add(make_post(client_id="a"))
        post_store.add(make_post(client_id="b"))
        post_store.add(make_post(client_id="b", status=PostStatus.FAILED))

        assert len(post_store.list_posts(client_id="b")) == 2
        assert len(post_store.list_posts(client_id="b", status=PostStatus.FAILED)) == 1
        assert len(post_store.list_posts()) == 3

    def test_stats(self, post_store: PostStore) -> None:
        post_store.add(make_post())
        post_store.add(make_post())
        post_store.add(make_post(status=PostStatus.FAILED))
        assert post_store.stats() == {"scheduled": 2, "failed": 1}
