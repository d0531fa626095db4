"""Internal machinery: HTTP client."""

from .http import BearerAuth, HttpClient, HttpError, Response

__all__ = [
    "BearerAuth",
    "HttpClient",
    "HttpError",
    "Response",
]
