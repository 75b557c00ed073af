"""Core provider abstractions: throttled cache, typed errors, HTTP error mapping."""
from crypto_tracker.providers.core.error_mapper import ProviderErrorMapper
from crypto_tracker.providers.core.exceptions import (
    FetchErrorKind,
    MarketDataError,
    NotFoundError,
    RateLimitedError,
    ServiceUnavailableError,
    UpstreamError,
)
from crypto_tracker.providers.core.throttled_cache import CachedEntry, ThrottledCache

__all__ = [
    "CachedEntry",
    "FetchErrorKind",
    "MarketDataError",
    "NotFoundError",
    "ProviderErrorMapper",
    "RateLimitedError",
    "ServiceUnavailableError",
    "ThrottledCache",
    "UpstreamError",
]
