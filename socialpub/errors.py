"""
Exception hierarchy shared by the stores, adapters and services.

    SocialPubError
    ├── NotFoundError            post or connection absent
    ├── InvalidTransitionError   status does not allow the requested change
    ├── ConfigurationError       missing app credentials / bad settings
    ├── ExchangeError            token exchange rejected or unreachable
    └── PublishError             one publish attempt failed
        ├── GraphAPIError        the platform answered with an error payload
        └── TransportError       the request never got a usable answer
"""

from __future__ import annotations

from typing import Optional


class SocialPubError(Exception):
    """Base class for all pipeline errors."""


class NotFoundError(SocialPubError):
    """Raised when a post or a connection does not exist."""


class InvalidTransitionError(SocialPubError):
    """Raised when a post's status forbids the requested operation."""


class ConfigurationError(SocialPubError):
    """Raised when required settings (e.g. Meta app credentials) are missing."""


class ExchangeError(SocialPubError):
    """Raised when a short-lived token could not be exchanged."""


class PublishError(SocialPubError):
    """Raised by a publish adapter when a post could not be published."""


class GraphAPIError(PublishError):
    """Raised when the Graph API returns an ``error`` object."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[int] = None,
        subcode: Optional[int] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.subcode = subcode
        self.status_code = status_code


class TransportError(PublishError):
    """Raised when an HTTP request fails before the platform could answer."""
