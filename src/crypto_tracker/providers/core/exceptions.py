"""Typed errors for upstream market-data calls."""
from enum import Enum

import httpx


class FetchErrorKind(str, Enum):
    """How an upstream call failed, as far as caching is concerned."""

    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    OTHER = "other"


class UpstreamError(Exception):
    """Raised by upstream clients; carries the classified failure kind."""

    def __init__(
        self,
        kind: FetchErrorKind,
        message: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        self.status_code = status_code

    @classmethod
    def from_http_status(cls, exc: httpx.HTTPStatusError) -> "UpstreamError":
        """Classify an httpx status error by its response code."""
        status = exc.response.status_code
        if status == 429:
            kind = FetchErrorKind.RATE_LIMITED
        elif status == 404:
            kind = FetchErrorKind.NOT_FOUND
        else:
            kind = FetchErrorKind.OTHER
        return cls(kind, f"{exc.request.method} {exc.request.url.path} -> {status}", status)


def classify_fetch_error(exc: BaseException) -> FetchErrorKind:
    """Return the failure kind for any exception raised by a fetch function."""
    if isinstance(exc, UpstreamError):
        return exc.kind
    if isinstance(exc, httpx.HTTPStatusError):
        return UpstreamError.from_http_status(exc).kind
    return FetchErrorKind.OTHER


class MarketDataError(Exception):
    """Base class for errors surfaced to market-data callers."""


class RateLimitedError(MarketDataError):
    """Upstream rate-limited us and there was nothing cached to fall back to."""


class NotFoundError(MarketDataError):
    """Upstream reported that the requested entity does not exist."""


class ServiceUnavailableError(MarketDataError):
    """Upstream failed and there was nothing cached to fall back to."""
