"""
SQLite-backed connection store.

Table: connections
  client_id         TEXT  ┐ compound PK
  platform          TEXT  ┘ (instagram | facebook)
  access_token      TEXT
  token_expires_at  TEXT  (ISO 8601, UTC, nullable)
  account_id        TEXT
  account_name      TEXT
  page_id           TEXT
  page_name         TEXT
  created_at        TEXT
  updated_at        TEXT

Pure data access. The token refresher and the publisher both read and write
through here; neither holds a token longer than one operation. Operations are
serialised on the store's lock like ``PostStore``.
"""

from __future__ import annotations

import datetime as dt
import logging
import threading
from pathlib import Path
from typing import Any, Optional

import sqlite_utils

from socialpub.connections.models import PlatformConnection
from socialpub.errors import NotFoundError
from socialpub.posts.models import Platform, utcnow
from socialpub.posts.store import open_database, synchronized, to_iso

logger = logging.getLogger(__name__)

_DATETIME_FIELDS = {"token_expires_at", "created_at", "updated_at"}


class ConnectionStore:
    """Per-client, per-platform credentials backed by SQLite."""

    TABLE = "connections"
    PK = ("client_id", "platform")

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.RLock()
        self._db = open_database(db_path)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        if self.TABLE not in self._db.table_names():
            self._db[self.TABLE].create(
                {
                    "client_id": str,
                    "platform": str,
                    "access_token": str,
                    "token_expires_at": str,
                    "account_id": str,
                    "account_name": str,
                    "page_id": str,
                    "page_name": str,
                    "created_at": str,
                    "updated_at": str,
                },
                pk=self.PK,
                not_null={"client_id", "platform", "access_token"},
            )
            self._db[self.TABLE].create_index(["token_expires_at"])
            logger.debug("Created %s table", self.TABLE)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @synchronized
    def get(self, client_id: str, platform: Platform) -> Optional[PlatformConnection]:
        """Return the connection for (client, platform), or None."""
        try:
            row = self._db[self.TABLE].get((client_id, Platform(platform).value))
        except sqlite_utils.db.NotFoundError:
            return None
        return self._from_row(row)

    @synchronized
    def insert(self, connection: PlatformConnection) -> PlatformConnection:
        """Insert a new connection; fails if (client, platform) already exists."""
        self._db[self.TABLE].insert(self._to_row(connection))
        logger.info(
            "Connected %s for client %s", connection.platform.value, connection.client_id
        )
        return connection

    @synchronized
    def upsert(self, connection: PlatformConnection) -> PlatformConnection:
        """Insert or replace in place (re-connect)."""
        existing = self.get(connection.client_id, connection.platform)
        if existing is not None:
            connection = connection.model_copy(
                update={"created_at": existing.created_at, "updated_at": utcnow()}
            )
        self._db[self.TABLE].upsert(self._to_row(connection), pk=self.PK)
        logger.info(
            "Saved %s connection for client %s",
            connection.platform.value,
            connection.client_id,
        )
        return connection

    @synchronized
    def update(self, client_id: str, platform: Platform, **fields: Any) -> PlatformConnection:
        """Overwrite selected fields of an existing connection."""
        key = (client_id, Platform(platform).value)
        if self.get(client_id, platform) is None:
            raise NotFoundError(f"Connection not found: {client_id}/{Platform(platform).value}")
        row = {
            k: to_iso(v) if k in _DATETIME_FIELDS else v for k, v in fields.items()
        }
        row["updated_at"] = to_iso(utcnow())
        self._db[self.TABLE].update(key, row)
        return self.get(client_id, platform)  # type: ignore[return-value]

    @synchronized
    def delete(self, client_id: str, platform: Platform) -> bool:
        """Disconnect. Returns False if there was nothing to delete."""
        if self.get(client_id, platform) is None:
            return False
        self._db[self.TABLE].delete((client_id, Platform(platform).value))
        logger.info("Disconnected %s for client %s", Platform(platform).value, client_id)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @synchronized
    def list_for_client(self, client_id: str) -> list[PlatformConnection]:
        rows = self._db[self.TABLE].rows_where(
            "client_id = ?", [client_id], order_by="platform DESC"
        )
        return [self._from_row(r) for r in rows]

    @synchronized
    def list_all(self) -> list[PlatformConnection]:
        rows = self._db[self.TABLE].rows_where(order_by="client_id, platform")
        return [self._from_row(r) for r in rows]

    @synchronized
    def list_expiring(self, before: dt.datetime) -> list[PlatformConnection]:
        """Connections whose token expires before ``before``. Null expiries are skipped."""
        rows = self._db[self.TABLE].rows_where(
            "token_expires_at IS NOT NULL AND token_expires_at < ?",
            [to_iso(before)],
            order_by="token_expires_at ASC",
        )
        return [self._from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_row(connection: PlatformConnection) -> dict:
        return {
            "client_id": connection.client_id,
            "platform": connection.platform.value,
            "access_token": connection.access_token,
            "token_expires_at": to_iso(connection.token_expires_at),
            "account_id": connection.account_id,
            "account_name": connection.account_name,
            "page_id": connection.page_id,
            "page_name": connection.page_name,
            "created_at": to_iso(connection.created_at),
            "updated_at": to_iso(connection.updated_at),
        }

    @staticmethod
    def _from_row(row: dict) -> PlatformConnection:
        return PlatformConnection(
            client_id=row["client_id"],
            platform=row["platform"],
            access_token=row["access_token"],
            token_expires_at=(
                dt.datetime.fromisoformat(row["token_expires_at"])
                if row["token_expires_at"]
                else None
            ),
            account_id=row["account_id"],
            account_name=row["account_name"],
            page_id=row["page_id"],
            page_name=row["page_name"],
            created_at=dt.datetime.fromisoformat(row["created_at"]),
            updated_at=dt.datetime.fromisoformat(row["updated_at"]),
        )

    @synchronized
    def close(self) -> None:
        self._db.close()

    def __enter__(self) -> "ConnectionStore":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
