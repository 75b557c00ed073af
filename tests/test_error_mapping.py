"""Tests for upstream error classification and HTTP mapping."""
import asyncio

import httpx
import pytest
from fastapi import HTTPException

from crypto_tracker.providers.core import (
    FetchErrorKind,
    NotFoundError,
    ProviderErrorMapper,
    RateLimitedError,
    ServiceUnavailableError,
    UpstreamError,
)
from crypto_tracker.providers.core.exceptions import classify_fetch_error


def status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.test/coins/markets")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError("failed", request=request, response=response)


class TestClassifyFetchError:
    @pytest.mark.parametrize(
        "code,kind",
        [
            (429, FetchErrorKind.RATE_LIMITED),
            (404, FetchErrorKind.NOT_FOUND),
            (500, FetchErrorKind.OTHER),
            (403, FetchErrorKind.OTHER),
        ],
    )
    def test_http_status(self, code, kind):
        assert classify_fetch_error(status_error(code)) is kind
        assert UpstreamError.from_http_status(status_error(code)).status_code == code

    def test_untyped_errors_are_other(self):
        assert classify_fetch_error(ValueError("bad json")) is FetchErrorKind.OTHER
        assert classify_fetch_error(httpx.ConnectError("refused")) is FetchErrorKind.OTHER


class TestProviderErrorMapper:
    mapper = ProviderErrorMapper("Crypto", "CoinGecko")

    @pytest.mark.parametrize(
        "exc,status",
        [
            (NotFoundError("x"), 404),
            (RateLimitedError("x"), 429),
            (ServiceUnavailableError("x"), 503),
            (asyncio.TimeoutError(), 504),
            (RuntimeError("x"), 500),
        ],
    )
    def test_status_codes(self, exc, status):
        assert self.mapper.to_http(exc)[0] == status

    def test_not_found_detail_names_symbol(self):
        assert self.mapper.to_http(NotFoundError("x"), symbol="dogecoin") == (
            404,
            "Crypto 'dogecoin' not found",
        )

    def test_raise_http_chains_cause(self):
        error = RateLimitedError("x")
        with pytest.raises(HTTPException) as exc_info:
            self.mapper.raise_http(error)
        assert exc_info.value.status_code == 429
        assert exc_info.value.__cause__ is error
