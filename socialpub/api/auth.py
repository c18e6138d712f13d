"""
Bearer authentication.

A caller is accepted when ``Authorization: Bearer <credential>`` carries
either the configured service-role key or a JWT signed with ``jwt_secret``.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

import jwt
from fastapi import Header, HTTPException, Request

logger = logging.getLogger(__name__)

SERVICE_ROLE = "service_role"


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, credential = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credential.strip():
        return None
    return credential.strip()


def require_caller(request: Request, authorization: Optional[str] = Header(None)) -> str:
    """Return the caller identity, or reject with 401."""
    cfg = request.app.state.settings
    token = bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if cfg.service_role_key and hmac.compare_digest(
        token.encode(), cfg.service_role_key.encode()
    ):
        return SERVICE_ROLE

    if cfg.jwt_secret:
        try:
            payload = jwt.decode(token, cfg.jwt_secret, algorithms=[cfg.jwt_algorithm])
        except jwt.PyJWTError as exc:
            logger.info("Rejected bearer token: %s", exc)
            raise HTTPException(status_code=401, detail="Unauthorized") from exc
        return str(payload.get("sub") or payload.get("user_id") or "user")

    raise HTTPException(status_code=401, detail="Unauthorized")
