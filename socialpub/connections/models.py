"""Platform connection model: one stored credential per (client, platform)."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from socialpub.posts.models import Platform, as_utc, utcnow


class PlatformConnection(BaseModel):
    """Access token and account identifiers for one client on one platform."""

    client_id: str
    platform: Platform
    access_token: str = Field(repr=False)
    token_expires_at: Optional[dt.datetime] = None

    # Instagram business account
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    # Facebook page
    page_id: Optional[str] = None
    page_name: Optional[str] = None

    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)

    @field_validator("platform")
    @classmethod
    def _concrete_platform(cls, v: Platform) -> Platform:
        if v is Platform.BOTH:
            raise ValueError("a connection belongs to a single platform")
        return v

    @field_validator("token_expires_at", "created_at", "updated_at")
    @classmethod
    def _normalise_tz(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return as_utc(v) if v is not None else None

    @property
    def display_name(self) -> Optional[str]:
        return self.account_name or self.page_name
