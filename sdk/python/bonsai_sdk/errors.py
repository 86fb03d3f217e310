"""
Bonsai SDK - Error classes

Every failure surfaces as a subclass of BonsaiError. The SDK never retries;
errors propagate to the caller as soon as they are detected.
"""

import json
from typing import Any, Optional

import httpx


class BonsaiError(Exception):
    """Base exception for the Bonsai SDK."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(BonsaiError):
    """Missing or invalid client configuration."""

    pass


class ServerError(BonsaiError):
    """Non-success response from the Bonsai API."""

    def __init__(
        self, body: Any, http_status: Optional[int] = None, message: Optional[str] = None
    ):
        self.body = _stringify(body)
        self.http_status = http_status
        super().__init__(message or f"Internal server error: {self.body}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ServerError":
        """Create from an HTTP response."""
        return cls(_response_body(response), http_status=response.status_code)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(http_status={self.http_status}, body={self.body!r})"


class NotFoundError(ServerError):
    """Requested resource does not exist (yet)."""

    def __init__(self, message: str = "Receipt not found", body: Any = ""):
        super().__init__(body, http_status=404, message=message)


class DownloadError(BonsaiError):
    """Transport failure while fetching a binary artifact."""

    pass


class UnexpectedVariantError(BonsaiError):
    """The server answered with a shape this client does not know."""

    pass


class NetworkError(BonsaiError):
    """Connection-level failure talking to the API."""

    pass


class RequestTimeoutError(NetworkError):
    """Request exceeded the configured timeout."""

    def __init__(self, message: str = "Request timed out", timeout_seconds: Optional[float] = None):
        super().__init__(message)
        self.timeout_seconds = timeout_seconds


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _stringify(body: Any) -> str:
    if isinstance(body, str):
        return body
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return json.dumps(body)
