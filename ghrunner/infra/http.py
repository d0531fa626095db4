"""Small aiohttp client for REST APIs.

One ClientSession per client, opened on the first request and closed by
`async with` (or `close()`). Every failure surfaces as HttpError: a real
status for 4xx/5xx answers, status 0 when no response arrived at all.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from loguru import logger

# ─── Errors ──────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class HttpError(Exception):
    """HTTP failure. status == 0 means no response was received."""

    status: int
    body: str

    def __str__(self) -> str:
        if self.status == 0:
            return f"HTTP request failed: {self.body}"
        return f"HTTP {self.status}: {self.body}"

    @property
    def is_transport(self) -> bool:
        return self.status == 0


# ─── Request / response ──────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class BearerAuth:
    token: str = field(repr=False)

    def header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@dataclass(frozen=True, slots=True)
class Response:
    status: int
    text: str

    def json(self) -> Any:
        return json.loads(self.text) if self.text else None


# ─── Client ──────────────────────────────────────────────────────────


class HttpClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._default_headers = default_headers or {}
        self._session: aiohttp.ClientSession | None = None
        self._log = logger.bind(component="http")

    @property
    def base_url(self) -> str:
        return self._base_url

    def _session_for_request(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def request(
        self,
        method: str,
        path: str,
        *,
        auth: BearerAuth | None = None,
        json: Any = None,
    ) -> Response:
        """Send one request and return its status and body text.

        Raises:
            HttpError: On a status >= 400, a connection failure or a timeout.
        """
        session = self._session_for_request()
        headers = (auth.header() if auth else {}) | self._default_headers
        self._log.debug("{method} {path}", method=method, path=path)

        try:
            async with session.request(
                method, f"{self._base_url}{path}", headers=headers, json=json
            ) as resp:
                status, text = resp.status, await resp.text()
        except aiohttp.ClientError as e:
            raise HttpError(status=0, body=str(e) or type(e).__name__) from e
        except asyncio.TimeoutError as e:
            raise HttpError(status=0, body=f"timed out after {self._timeout.total}s") from e

        if status >= 400:
            self._log.warning(
                "HTTP {status} from {method} {path}", status=status, method=method, path=path
            )
            raise HttpError(status=status, body=text)
        return Response(status=status, text=text)

    async def post(self, path: str, *, auth: BearerAuth | None = None, json: Any = None) -> Response:
        return await self.request("POST", path, auth=auth, json=json)

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()
