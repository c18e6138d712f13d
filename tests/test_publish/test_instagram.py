"""
Tests for socialpub/publish/instagram.py

All HTTP calls are mocked. No real API credentials needed.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from conftest import err_response, make_connection, ok_response
from socialpub.errors import GraphAPIError, PublishError
from socialpub.posts.models import PostType
from socialpub.publish.base import PostContent
from socialpub.publish.graph import GraphClient
from socialpub.publish.instagram import InstagramAdapter


# ---------------------------------------------------------------------------
# Helpers / fixtures
# ---------------------------------------------------------------------------


def _make_adapter(**kwargs) -> InstagramAdapter:
    """Return an adapter with a no-op sleep; tests mock ``graph._http``."""
    kwargs.setdefault("sleep", MagicMock())
    return InstagramAdapter(GraphClient("https://graph.facebook.com/v21.0"), **kwargs)


def _posted_paths(adapter: InstagramAdapter) -> list[str]:
    return [c.args[0] for c in adapter.graph._http.post.call_args_list]


def _posted_data(adapter: InstagramAdapter) -> list[dict]:
    return [c.kwargs["data"] for c in adapter.graph._http.post.call_args_list]


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


class TestCreateImageContainer:
    def test_returns_container_id(self) -> None:
        adapter = _make_adapter()
        adapter.graph._http.post = MagicMock(return_value=ok_response({"id": "CONTAINER1"}))

        result = adapter.create_image_container("IG1", "T", "https://example.com/img.jpg", "Caption")

        assert result == "CONTAINER1"
        assert _posted_paths(adapter) == ["/IG1/media"]

    def test_payload_includes_caption_for_standalone(self) -> None:
        adapter = _make_adapter()
        adapter.graph._http.post = MagicMock(return_value=ok_response({"id": "C1"}))

        adapter.create_image_container("IG1", "T", "https://example.com/img.jpg", "Hello")

        data = _posted_data(adapter)[0]
        assert data["caption"] == "Hello"
        assert "is_carousel_item" not in data

    def test_carousel_item_has_no_caption(self) -> None:
        adapter = _make_adapter()
        adapter.graph._http.post = MagicMock(return_value=ok_response({"id": "C1"}))

        adapter.create_image_container("IG1", "T", "https://example.com/img.jpg", is_carousel_item=True)

        data = _posted_data(adapter)[0]
        assert data["is_carousel_item"] == "true"
        assert "caption" not in data

    def test_missing_id_raises(self) -> None:
        adapter = _make_adapter()
        adapter.graph._http.post = MagicMock(return_value=ok_response({}))

        with pytest.raises(PublishError, match="no id"):
            adapter.create_image_container("IG1", "T", "https://example.com/img.jpg")


# ---------------------------------------------------------------------------
# publish()
# ---------------------------------------------------------------------------


class TestPublish:
    def test_single_image_two_calls(self) -> None:
        adapter = _make_adapter()
        adapter.graph._http.post = MagicMock(
            side_effect=[ok_response({"id": "C1"}), ok_response({"id": "POST1"})]
        )

        post_id = adapter.publish(
            make_connection(), PostContent("Cap", PostType.IMAGE, ["https://example.com/a.jpg"])
        )

        assert post_id == "POST1"
        assert _posted_paths(adapter) == ["/IG123/media", "/IG123/media_publish"]
        assert _posted_data(adapter)[1]["creation_id"] == "C1"
        assert _posted_data(adapter)[1]["access_token"] == "TOKEN"

    def test_carousel_children_then_parent(self) -> None:
        adapter = _make_adapter()
        adapter.graph._http.post = MagicMock(
            side_effect=[
                ok_response({"id": "CH1"}),
                ok_response({"id": "CH2"}),
                ok_response({"id": "PARENT"}),
                ok_response({"id": "POST1"}),
            ]
        )
        urls = ["https://example.com/1.jpg", "https://example.com/2.jpg"]

        post_id = adapter.publish(make_connection(), PostContent("Cap", PostType.CAROUSEL, urls))

        assert post_id == "POST1"
        parent = _posted_data(adapter)[2]
        assert parent["media_type"] == "CAROUSEL"
        assert parent["children"] == "CH1,CH2"
        assert parent["caption"] == "Cap"
        assert _posted_data(adapter)[3]["creation_id"] == "PARENT"

    def test_single_url_carousel_posts_as_image(self) -> None:
        adapter = _make_adapter()
        adapter.graph._http.post = MagicMock(
            side_effect=[ok_response({"id": "C1"}), ok_response({"id": "POST1"})]
        )

        adapter.publish(make_connection(), PostContent("Cap", PostType.CAROUSEL, ["https://example.com/1.jpg"]))

        assert "image_url" in _posted_data(adapter)[0]
        assert "media_type" not in _posted_data(adapter)[0]

    def test_carousel_over_ten_items_rejected(self) -> None:
        adapter = _make_adapter()
        adapter.graph._http.post = MagicMock()
        urls = [f"https://example.com/{i}.jpg" for i in range(11)]

        with pytest.raises(PublishError, match="at most 10"):
            adapter.publish(make_connection(), PostContent("", PostType.CAROUSEL, urls))
        adapter.graph._http.post.assert_not_called()

    def test_video_waits_then_publishes(self) -> None:
        sleep = MagicMock()
        adapter = _make_adapter(sleep=sleep, video_delay=10.0)
        adapter.graph._http.post = MagicMock(
            side_effect=[ok_response({"id": "V1"}), ok_response({"id": "POST1"})]
        )

        post_id = adapter.publish(
            make_connection(), PostContent("Cap", PostType.VIDEO, ["https://example.com/v.mp4"])
        )

        assert post_id == "POST1"
        sleep.assert_called_once_with(10.0)
        data = _posted_data(adapter)[0]
        assert data["media_type"] == "VIDEO"
        assert data["video_url"] == "https://example.com/v.mp4"

    def test_reel_uses_reels_media_type(self) -> None:
        adapter = _make_adapter()
        adapter.graph._http.post = MagicMock(
            side_effect=[ok_response({"id": "V1"}), ok_response({"id": "POST1"})]
        )

        adapter.publish(make_connection(), PostContent("", PostType.REEL, ["https://example.com/v.mp4"]))

        assert _posted_data(adapter)[0]["media_type"] == "REELS"

    def test_missing_account_id(self) -> None:
        adapter = _make_adapter()
        with pytest.raises(PublishError, match="Instagram account ID not found"):
            adapter.publish(
                make_connection(account_id=None),
                PostContent("", PostType.IMAGE, ["https://example.com/a.jpg"]),
            )

    def test_no_media(self) -> None:
        adapter = _make_adapter()
        with pytest.raises(PublishError, match="at least one media URL"):
            adapter.publish(make_connection(), PostContent("", PostType.STORY, []))

    def test_api_error_propagates(self) -> None:
        adapter = _make_adapter()
        adapter.graph._http.post = MagicMock(return_value=err_response("Media URL invalid"))

        with pytest.raises(GraphAPIError, match="Media URL invalid"):
            adapter.publish(
                make_connection(), PostContent("", PostType.IMAGE, ["https://example.com/a.jpg"])
            )


# ---------------------------------------------------------------------------
# Video polling
# ---------------------------------------------------------------------------


class TestWaitUntilReady:
    def test_poll_until_finished(self) -> None:
        sleep = MagicMock()
        adapter = _make_adapter(video_wait="poll", poll_interval=5.0, sleep=sleep)
        adapter.graph._http.get = MagicMock(
            side_effect=[
                ok_response({"status_code": "IN_PROGRESS"}),
                ok_response({"status_code": "FINISHED"}),
            ]
        )

        adapter.wait_until_ready("V1", "T")

        sleep.assert_called_once_with(5.0)

    def test_poll_error_status_raises(self) -> None:
        adapter = _make_adapter(video_wait="poll")
        adapter.graph._http.get = MagicMock(return_value=ok_response({"status_code": "ERROR"}))

        with pytest.raises(PublishError, match="processing error"):
            adapter.wait_until_ready("V1", "T")

    def test_poll_timeout(self) -> None:
        adapter = _make_adapter(video_wait="poll", poll_interval=5.0, poll_timeout=10.0)
        adapter.graph._http.get = MagicMock(return_value=ok_response({"status_code": "IN_PROGRESS"}))

        with pytest.raises(PublishError, match="not ready"):
            adapter.wait_until_ready("V1", "T")

    def test_invalid_mode_rejected(self) -> None:
        with pytest.raises(ValueError):
            _make_adapter(video_wait="forever")
