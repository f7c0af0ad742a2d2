from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from meetai.util.security import create_server_token

logger = logging.getLogger(__name__)

API_PREFIX = "api/v2"


class StreamError(Exception):
    pass


class StreamTransientError(StreamError):
    """Transient Stream errors (timeouts, 429/5xx, network) that the sender's retry will recover."""


class StreamRestClient:
    """
    Server-side Stream REST client for the v2 coordinator API.

    Paths are relative to /api/v2 (e.g. "video/call/default/abc/mark_ended").
    Auth is a server JWT signed with the API secret, plus api_key as a query param.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        api_secret: str,
        timeout: float = 20.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if not self.api_secret:
            raise StreamError("STREAM_API_SECRET not configured")
        return {
            "Authorization": create_server_token(self.api_secret),
            "Stream-Auth-Type": "jwt",
            "Content-Type": "application/json",
        }

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{API_PREFIX}/{path.lstrip('/')}"

    def request(self, method: str, path: str, *, json: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        url = self.url_for(path)
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.request(method, url, params={"api_key": self.api_key}, headers=self._headers(), json=json)
                resp.raise_for_status()
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise StreamTransientError(f"Stream {method} {path}: {e}") from e
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            body = e.response.text[:500]
            if code == 429 or 500 <= code <= 599:
                raise StreamTransientError(f"Stream {method} {path}: HTTP {code} {body}") from e
            raise StreamError(f"Stream {method} {path}: HTTP {code} {body}") from e

        if not resp.content:
            return {}
        try:
            body = resp.json()
        except ValueError as e:
            raise StreamError(f"Stream {method} {path}: non-JSON response") from e
        return body if isinstance(body, dict) else {}

    def post(self, path: str, payload: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        return self.request("POST", path, json=payload or {})

    def upsert_users(self, users: list[dict[str, Any]]) -> dict[str, Any]:
        # Users are app-wide: one endpoint serves both video and chat.
        return self.post("users", {"users": {u["id"]: u for u in users}})
