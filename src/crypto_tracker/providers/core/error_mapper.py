"""Domain concept for mapping market-data exceptions to HTTP responses."""
import asyncio
from dataclasses import dataclass

from fastapi import HTTPException

from crypto_tracker.providers.core.exceptions import (
    NotFoundError,
    RateLimitedError,
    ServiceUnavailableError,
)


@dataclass(frozen=True)
class ProviderErrorMapper:
    """Maps gateway exceptions to HTTP (status_code, detail).

    Inject this into services to centralize error-to-HTTP mapping with the
    resource and API names used in response details.
    """

    resource_name: str = "Resource"
    api_name: str = "API"

    def to_http(
        self,
        exc: Exception,
        symbol: str | None = None,
    ) -> tuple[int, str]:
        """Map a gateway exception to (status_code, detail) for HTTP responses.

        Args:
            exc: The exception raised by the gateway or service.
            symbol: Optional identifier to include in detail (e.g. "bitcoin").

        Returns:
            (status_code, detail) suitable for HTTPException(status_code=..., detail=...).
        """
        if isinstance(exc, NotFoundError):
            detail = (
                f"{self.resource_name} not found"
                if symbol is None
                else f"{self.resource_name} '{symbol}' not found"
            )
            return (404, detail)
        if isinstance(exc, RateLimitedError):
            return (429, f"{self.api_name} rate limit reached, try again later")
        if isinstance(exc, ServiceUnavailableError):
            return (503, f"{self.api_name} is unavailable")
        if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
            detail = "Request timed out"
            if symbol is not None:
                detail = f"Request to {self.api_name} timed out for '{symbol}'"
            return (504, detail)
        return (500, "Internal server error")

    def raise_http(
        self,
        exc: Exception,
        symbol: str | None = None,
    ) -> None:
        """Map gateway exception to HTTP and raise HTTPException. Never returns."""
        status_code, detail = self.to_http(exc, symbol=symbol)
        raise HTTPException(status_code=status_code, detail=detail) from exc
