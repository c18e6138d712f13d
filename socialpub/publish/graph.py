"""
Minimal Meta Graph API client shared by the publish adapters and the token
refresher.

Docs: https://developers.facebook.com/docs/graph-api

Every call is a single attempt. The access token travels per call, because one
client serves every connected account.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from socialpub.errors import GraphAPIError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://graph.facebook.com/v21.0"


class GraphClient:
    """
    Thin wrapper around ``httpx.Client`` that turns Graph error payloads and
    non-2xx answers into :class:`GraphAPIError` and transport failures into
    :class:`TransportError`.

    Usage::

        with GraphClient() as graph:
            body = graph.post("/12345/media", {"image_url": url}, token=token)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 30.0,
        http: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def post(self, path: str, data: dict[str, Any], *, token: Optional[str] = None) -> dict:
        """POST form data and return parsed JSON, raising on error."""
        payload = dict(data)
        if token is not None:
            payload["access_token"] = token
        try:
            resp = self._http.post(path, data=payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"POST {path} failed: {exc}") from exc
        return self._parse(resp, path)

    def get(self, path: str, params: Optional[dict[str, Any]] = None, *, token: Optional[str] = None) -> dict:
        """GET with query params and return parsed JSON, raising on error."""
        query = dict(params or {})
        if token is not None:
            query["access_token"] = token
        try:
            resp = self._http.get(path, params=query)
        except httpx.HTTPError as exc:
            raise TransportError(f"GET {path} failed: {exc}") from exc
        return self._parse(resp, path)

    @staticmethod
    def _parse(resp: httpx.Response, path: str) -> dict:
        try:
            body = resp.json()
        except ValueError as exc:
            raise GraphAPIError(
                f"Non-JSON response from {path} (HTTP {resp.status_code})",
                status_code=resp.status_code,
            ) from exc

        if isinstance(body, dict) and "error" in body:
            err = body["error"]
            if isinstance(err, dict):
                msg = err.get("message") or str(err)
                raise GraphAPIError(
                    msg,
                    code=err.get("code"),
                    subcode=err.get("error_subcode"),
                    status_code=resp.status_code,
                )
            raise GraphAPIError(str(err), status_code=resp.status_code)

        if resp.status_code >= 400:
            raise GraphAPIError(
                f"HTTP {resp.status_code} from {path}",
                status_code=resp.status_code,
            )
        if not isinstance(body, dict):
            raise GraphAPIError(
                f"Unexpected response from {path}: {body!r}",
                status_code=resp.status_code,
            )
        return body

    # ------------------------------------------------------------------
    # Context manager / cleanup
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "GraphClient":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
