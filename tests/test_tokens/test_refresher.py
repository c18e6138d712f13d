"""
Tests for socialpub/tokens/refresher.py

The Graph client's httpx transport is mocked. No network access.
"""

from __future__ import annotations

import datetime as dt
from unittest.mock import MagicMock

import httpx
import pytest

from conftest import NOW, err_response, make_connection, ok_response
from socialpub.connections.store import ConnectionStore
from socialpub.errors import ConfigurationError, ExchangeError, NotFoundError
from socialpub.posts.models import Platform
from socialpub.publish.graph import GraphClient
from socialpub.tokens.refresher import TokenRefresher


@pytest.fixture()
def graph() -> GraphClient:
    return GraphClient("https://graph.facebook.com/v22.0")


@pytest.fixture()
def refresher(graph: GraphClient, connection_store: ConnectionStore) -> TokenRefresher:
    return TokenRefresher(
        graph, connection_store, app_id="APP", app_secret="SECRET", clock=lambda: NOW
    )


class TestRequestLongLived:
    def test_sends_exchange_grant(self, refresher: TokenRefresher, graph: GraphClient) -> None:
        graph._http.get = MagicMock(
            return_value=ok_response({"access_token": "LONG", "expires_in": 5184000})
        )

        token, expires_at = refresher.request_long_lived("SHORT")

        assert token == "LONG"
        assert expires_at == NOW + dt.timedelta(seconds=5184000)
        args, kwargs = graph._http.get.call_args
        assert args[0] == "/oauth/access_token"
        assert kwargs["params"] == {
            "grant_type": "fb_exchange_token",
            "client_id": "APP",
            "client_secret": "SECRET",
            "fb_exchange_token": "SHORT",
        }

    def test_missing_expires_in_gives_no_expiry(self, refresher: TokenRefresher, graph: GraphClient) -> None:
        graph._http.get = MagicMock(return_value=ok_response({"access_token": "LONG"}))

        _, expires_at = refresher.request_long_lived("SHORT")

        assert expires_at is None

    def test_rejection_raises_exchange_error(self, refresher: TokenRefresher, graph: GraphClient) -> None:
        graph._http.get = MagicMock(return_value=err_response("Invalid OAuth access token", code=190))

        with pytest.raises(ExchangeError, match="Invalid OAuth"):
            refresher.request_long_lived("SHORT")

    def test_non_numeric_expires_in_raises_exchange_error(
        self, refresher: TokenRefresher, graph: GraphClient
    ) -> None:
        graph._http.get = MagicMock(
            return_value=ok_response({"access_token": "LONG", "expires_in": "soon"})
        )

        with pytest.raises(ExchangeError, match="expires_in"):
            refresher.request_long_lived("SHORT")

    def test_missing_credentials(self, graph: GraphClient, connection_store: ConnectionStore) -> None:
        refresher = TokenRefresher(graph, connection_store, app_id="", app_secret="")

        assert not refresher.configured
        with pytest.raises(ConfigurationError, match="Meta App credentials not configured"):
            refresher.request_long_lived("SHORT")


class TestExchange:
    def test_success_stores_on_client_connections(
        self, refresher: TokenRefresher, graph: GraphClient, connection_store: ConnectionStore
    ) -> None:
        connection_store.insert(make_connection(access_token="OLD_IG"))
        connection_store.insert(make_connection(platform=Platform.FACEBOOK, access_token="OLD_FB"))
        graph._http.get = MagicMock(
            return_value=ok_response({"access_token": "LONG", "expires_in": 3600})
        )

        result = refresher.exchange("SHORT", client_id="client1")

        assert result.exchanged
        assert result.long_lived_token == "LONG"
        for conn in connection_store.list_for_client("client1"):
            assert conn.access_token == "LONG"
            assert conn.token_expires_at == NOW + dt.timedelta(hours=1)

    def test_platform_filter(
        self, refresher: TokenRefresher, graph: GraphClient, connection_store: ConnectionStore
    ) -> None:
        connection_store.insert(make_connection(access_token="OLD_IG"))
        connection_store.insert(make_connection(platform=Platform.FACEBOOK, access_token="OLD_FB"))
        graph._http.get = MagicMock(return_value=ok_response({"access_token": "LONG"}))

        refresher.exchange("SHORT", client_id="client1", platform=Platform.FACEBOOK)

        assert connection_store.get("client1", Platform.INSTAGRAM).access_token == "OLD_IG"
        assert connection_store.get("client1", Platform.FACEBOOK).access_token == "LONG"

    def test_failure_falls_back_to_original(
        self, refresher: TokenRefresher, graph: GraphClient, connection_store: ConnectionStore
    ) -> None:
        connection_store.insert(make_connection(access_token="OLD"))
        graph._http.get = MagicMock(return_value=err_response("Token already long-lived"))

        result = refresher.exchange("SHORT", client_id="client1")

        assert not result.exchanged
        assert result.long_lived_token == "SHORT"
        assert result.expires_at is None
        assert "original token" in result.message
        assert connection_store.get("client1", Platform.INSTAGRAM).access_token == "OLD"

    def test_transport_failure_falls_back(self, refresher: TokenRefresher, graph: GraphClient) -> None:
        graph._http.get = MagicMock(side_effect=httpx.ReadTimeout("timeout"))

        result = refresher.exchange("SHORT")

        assert not result.exchanged
        assert result.long_lived_token == "SHORT"

    def test_malformed_expiry_falls_back(self, refresher: TokenRefresher, graph: GraphClient) -> None:
        graph._http.get = MagicMock(
            return_value=ok_response({"access_token": "LONG", "expires_in": "soon"})
        )

        result = refresher.exchange("SHORT")

        assert not result.exchanged
        assert result.long_lived_token == "SHORT"

    def test_empty_token_rejected(self, refresher: TokenRefresher) -> None:
        with pytest.raises(ValueError, match="accessToken is required"):
            refresher.exchange("")


class TestRefreshExpiring:
    def test_only_tokens_inside_horizon(
        self, refresher: TokenRefresher, graph: GraphClient, connection_store: ConnectionStore
    ) -> None:
        connection_store.insert(make_connection(client_id="soon", token_expires_at=NOW + dt.timedelta(days=3)))
        connection_store.insert(make_connection(client_id="later", token_expires_at=NOW + dt.timedelta(days=10)))
        connection_store.insert(make_connection(client_id="never", token_expires_at=None))
        graph._http.get = MagicMock(
            return_value=ok_response({"access_token": "NEW", "expires_in": 5184000})
        )

        summary = refresher.refresh_expiring()

        assert summary.total == 1
        assert summary.refreshed == 1
        assert summary.results[0].client_id == "soon"
        assert summary.results[0].account_name == "acme"
        assert connection_store.get("soon", Platform.INSTAGRAM).access_token == "NEW"
        assert connection_store.get("later", Platform.INSTAGRAM).access_token == "TOKEN"
        assert connection_store.get("never", Platform.INSTAGRAM).token_expires_at is None

    def test_one_failure_does_not_abort(
        self, refresher: TokenRefresher, graph: GraphClient, connection_store: ConnectionStore
    ) -> None:
        connection_store.insert(make_connection(client_id="a", token_expires_at=NOW + dt.timedelta(days=1)))
        connection_store.insert(make_connection(client_id="b", token_expires_at=NOW + dt.timedelta(days=2)))
        graph._http.get = MagicMock(
            side_effect=[err_response("Session expired"), ok_response({"access_token": "NEW"})]
        )

        summary = refresher.refresh_expiring()

        assert summary.total == 2
        assert summary.refreshed == 1
        assert summary.results[0].error == "Session expired"
        assert connection_store.get("a", Platform.INSTAGRAM).access_token == "TOKEN"
        assert connection_store.get("b", Platform.INSTAGRAM).access_token == "NEW"

    def test_nothing_to_refresh(self, refresher: TokenRefresher, graph: GraphClient) -> None:
        graph._http.get = MagicMock()

        summary = refresher.refresh_expiring()

        assert summary.total == 0
        graph._http.get.assert_not_called()

    def test_requires_credentials(self, graph: GraphClient, connection_store: ConnectionStore) -> None:
        refresher = TokenRefresher(graph, connection_store, app_id="APP", app_secret="")
        with pytest.raises(ConfigurationError):
            refresher.refresh_expiring()


class TestCheck:
    def test_valid_token(
        self, refresher: TokenRefresher, graph: GraphClient, connection_store: ConnectionStore
    ) -> None:
        connection_store.insert(make_connection(token_expires_at=NOW))
        graph._http.get = MagicMock(return_value=ok_response({"id": "me"}))

        result = refresher.check("client1")

        assert result.is_valid
        assert result.expires_at == NOW
        assert graph._http.get.call_args.kwargs["params"] == {"access_token": "TOKEN"}

    def test_invalid_token(
        self, refresher: TokenRefresher, graph: GraphClient, connection_store: ConnectionStore
    ) -> None:
        connection_store.insert(make_connection())
        graph._http.get = MagicMock(return_value=err_response("Error validating access token"))

        result = refresher.check("client1", Platform.INSTAGRAM)

        assert not result.is_valid
        assert result.error == "Error validating access token"

    def test_http_error_with_empty_body_is_invalid(
        self, refresher: TokenRefresher, graph: GraphClient, connection_store: ConnectionStore
    ) -> None:
        connection_store.insert(make_connection())
        resp = ok_response({})
        resp.status_code = 500
        graph._http.get = MagicMock(return_value=resp)

        result = refresher.check("client1")

        assert not result.is_valid
        assert result.error == "HTTP 500 from /me"

    def test_no_connection(self, refresher: TokenRefresher) -> None:
        with pytest.raises(NotFoundError, match="Connection not found"):
            refresher.check("ghost")
