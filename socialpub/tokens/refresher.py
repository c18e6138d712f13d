"""
Meta access-token maintenance.

  exchange: short-lived token → long-lived token (~60 days) via the
            ``fb_exchange_token`` grant. On failure the original token is
            kept and reported as not exchanged.
  refresh:  re-exchange every stored token expiring within the horizon
            (7 days by default). Tokens without an expiry are never touched.
  check:    call ``/me`` with a client's stored token.

Docs: https://developers.facebook.com/docs/facebook-login/guides/access-tokens/get-long-lived
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from socialpub.connections.models import PlatformConnection
from socialpub.connections.store import ConnectionStore
from socialpub.errors import (
    ConfigurationError,
    ExchangeError,
    GraphAPIError,
    NotFoundError,
    TransportError,
)
from socialpub.posts.models import Platform, utcnow
from socialpub.publish.graph import GraphClient

logger = logging.getLogger(__name__)

DEFAULT_HORIZON = dt.timedelta(days=7)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class ExchangeResult:
    long_lived_token: str
    expires_at: Optional[dt.datetime]
    exchanged: bool
    message: Optional[str] = None


@dataclass
class RefreshItem:
    client_id: str
    platform: Platform
    account_name: Optional[str]
    success: bool
    error: Optional[str] = None


@dataclass
class RefreshSummary:
    results: list[RefreshItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def refreshed(self) -> int:
        return sum(1 for r in self.results if r.success)


@dataclass
class TokenCheck:
    is_valid: bool
    expires_at: Optional[dt.datetime]
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Refresher
# ---------------------------------------------------------------------------


class TokenRefresher:
    """
    Exchanges and renews Meta tokens stored in the connection store.

    Usage::

        refresher = TokenRefresher(graph, connections, app_id="...", app_secret="...")
        result = refresher.exchange(short_token, client_id="c1")
        summary = refresher.refresh_expiring()
    """

    def __init__(
        self,
        graph: GraphClient,
        connections: ConnectionStore,
        *,
        app_id: str,
        app_secret: str,
        horizon: dt.timedelta = DEFAULT_HORIZON,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self.graph = graph
        self.connections = connections
        self._app_id = app_id
        self._app_secret = app_secret
        self.horizon = horizon
        self._clock = clock

    @property
    def configured(self) -> bool:
        return bool(self._app_id and self._app_secret)

    # ------------------------------------------------------------------
    # Low-level exchange
    # ------------------------------------------------------------------

    def request_long_lived(self, access_token: str) -> tuple[str, Optional[dt.datetime]]:
        """
        Call the token endpoint once.

        Returns ``(token, expires_at)``; ``expires_at`` is None when the
        platform does not report ``expires_in``.

        Raises:
            ConfigurationError: app id / secret are not configured.
            ExchangeError: the platform rejected the token, was unreachable
                or sent an unusable answer.
        """
        if not self.configured:
            raise ConfigurationError("Meta App credentials not configured")

        try:
            body = self.graph.get(
                "/oauth/access_token",
                {
                    "grant_type": "fb_exchange_token",
                    "client_id": self._app_id,
                    "client_secret": self._app_secret,
                    "fb_exchange_token": access_token,
                },
            )
        except (GraphAPIError, TransportError) as exc:
            raise ExchangeError(str(exc) or "Exchange failed") from exc

        token = body.get("access_token")
        if not token:
            raise ExchangeError("Exchange response has no access_token")

        expires_in = body.get("expires_in")
        if not expires_in:
            return str(token), None
        try:
            seconds = int(expires_in)
        except (TypeError, ValueError) as exc:
            raise ExchangeError(f"Invalid expires_in in exchange response: {expires_in!r}") from exc
        return str(token), self._clock() + dt.timedelta(seconds=seconds)

    # ------------------------------------------------------------------
    # exchange
    # ------------------------------------------------------------------

    def exchange(
        self,
        access_token: str,
        client_id: Optional[str] = None,
        platform: Optional[Platform] = None,
    ) -> ExchangeResult:
        """
        Exchange a short-lived token, falling back to the original on failure.

        With ``client_id`` the new token is stored on that client's
        connections (only ``platform`` if given). Nothing is stored when the
        exchange fails.
        """
        if not access_token:
            raise ValueError("accessToken is required for exchange")

        try:
            token, expires_at = self.request_long_lived(access_token)
        except ExchangeError as exc:
            logger.warning("Token exchange failed, keeping original token: %s", exc)
            return ExchangeResult(
                long_lived_token=access_token,
                expires_at=None,
                exchanged=False,
                message=(
                    "Token exchange failed - using original token. "
                    "It may already be long-lived or invalid for exchange."
                ),
            )

        logger.info(
            "Token exchanged. Expires at %s",
            expires_at.isoformat() if expires_at else "never",
        )
        if client_id:
            self._store(client_id, platform, token, expires_at)
        return ExchangeResult(long_lived_token=token, expires_at=expires_at, exchanged=True)

    def _store(
        self,
        client_id: str,
        platform: Optional[Platform],
        token: str,
        expires_at: Optional[dt.datetime],
    ) -> None:
        targets = [
            c
            for c in self.connections.list_for_client(client_id)
            if platform is None or c.platform == platform
        ]
        if not targets:
            logger.warning("No stored connection for client %s; token not saved", client_id)
            return
        for conn in targets:
            self.connections.update(
                conn.client_id,
                conn.platform,
                access_token=token,
                token_expires_at=expires_at,
            )
            logger.info("Stored new %s token for client %s", conn.platform.value, client_id)

    # ------------------------------------------------------------------
    # refresh
    # ------------------------------------------------------------------

    def expiring(self, now: Optional[dt.datetime] = None) -> list[PlatformConnection]:
        """Connections whose token expires within the horizon."""
        now = now or self._clock()
        return self.connections.list_expiring(now + self.horizon)

    def refresh_expiring(self, now: Optional[dt.datetime] = None) -> RefreshSummary:
        """
        Re-exchange every token expiring within the horizon.

        Each connection is handled on its own: a failure is recorded in the
        summary and the batch continues.

        Raises:
            ConfigurationError: app id / secret are not configured.
        """
        if not self.configured:
            raise ConfigurationError("Meta App credentials not configured")

        expiring = self.expiring(now)
        summary = RefreshSummary()
        if not expiring:
            logger.info("No tokens need refreshing")
            return summary

        logger.info("Found %d token(s) to refresh", len(expiring))
        for conn in expiring:
            item = RefreshItem(
                client_id=conn.client_id,
                platform=conn.platform,
                account_name=conn.display_name,
                success=False,
            )
            try:
                token, expires_at = self.request_long_lived(conn.access_token)
                self.connections.update(
                    conn.client_id,
                    conn.platform,
                    access_token=token,
                    token_expires_at=expires_at,
                )
                item.success = True
            except ExchangeError as exc:
                item.error = str(exc)
                logger.warning(
                    "Refresh failed for %s/%s: %s", conn.client_id, conn.platform.value, exc
                )
            except Exception as exc:  # noqa: BLE001
                item.error = str(exc) or "Unknown error"
                logger.exception("Refresh failed for %s/%s", conn.client_id, conn.platform.value)
            summary.results.append(item)

        logger.info("Refreshed %d of %d token(s)", summary.refreshed, summary.total)
        return summary

    # ------------------------------------------------------------------
    # check
    # ------------------------------------------------------------------

    def check(self, client_id: str, platform: Optional[Platform] = None) -> TokenCheck:
        """
        Test a stored token with a ``/me`` call.

        Without ``platform`` the client's first connection is checked
        (instagram before facebook).

        Raises:
            NotFoundError: the client has no matching connection.
        """
        if platform is not None:
            conn = self.connections.get(client_id, platform)
        else:
            found = self.connections.list_for_client(client_id)
            conn = found[0] if found else None
        if conn is None:
            raise NotFoundError("Connection not found")

        try:
            self.graph.get("/me", token=conn.access_token)
        except (GraphAPIError, TransportError) as exc:
            return TokenCheck(is_valid=False, expires_at=conn.token_expires_at, error=str(exc))
        return TokenCheck(is_valid=True, expires_at=conn.token_expires_at)
