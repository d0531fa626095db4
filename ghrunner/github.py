"""GitHub runner registration-token client.

Exchanges a personal access token for a short-lived runner registration
token. One call, no retries; the caller decides what to do on failure.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from loguru import logger

from ghrunner.constants import GITHUB_API_URL, GITHUB_API_VERSION, HTTP_TIMEOUT
from ghrunner.core.exceptions import AuthError, DecodeError, TransportError
from ghrunner.infra.http import BearerAuth, HttpClient, HttpError
from ghrunner.types import RegistrationToken

log = logger.bind(component="github")


def github_http_client(api_url: str = GITHUB_API_URL, timeout: float = HTTP_TIMEOUT) -> HttpClient:
    return HttpClient(
        api_url,
        timeout=timeout,
        default_headers={
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        },
    )


def parse_registration_token(body: str) -> RegistrationToken:
    """Parse the `{token, expires_at}` body returned by GitHub."""
    try:
        data: Any = json.loads(body)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Registration token response is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise DecodeError("Registration token response is not a JSON object")

    token = data.get("token")
    expires_at = data.get("expires_at")
    if not isinstance(token, str) or not token:
        raise DecodeError("Registration token response has no 'token'")
    if not isinstance(expires_at, str):
        raise DecodeError("Registration token response has no 'expires_at'")

    try:
        expiry = datetime.fromisoformat(expires_at)
    except ValueError as e:
        raise DecodeError(f"Invalid 'expires_at' timestamp: {expires_at!r}") from e

    return RegistrationToken(value=token, expires_at=expiry)


class RegistrationTokenClient:
    """Fetches runner registration tokens for a repository."""

    def __init__(self, http: HttpClient) -> None:
        self._http = http

    async def acquire(self, access_token: str, owner: str, repo: str) -> RegistrationToken:
        path = f"/repos/{owner}/{repo}/actions/runners/registration-token"
        try:
            response = await self._http.post(path, auth=BearerAuth(access_token))
        except HttpError as e:
            if e.is_transport:
                raise TransportError(
                    f"Failed to reach GitHub at {self._http.base_url}: {e.body}"
                ) from e
            raise AuthError(e.status, e.body) from e

        token = parse_registration_token(response.text)
        log.info(
            "Obtained registration token for {owner}/{repo}, expires at {expires}",
            owner=owner, repo=repo, expires=token.expires_at.isoformat(),
        )
        return token
