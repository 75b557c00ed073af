"""Crypto market-data service: gateway calls with HTTP error mapping.

CryptoService wraps a MarketDataGatewayABC and turns gateway errors into
HTTPExceptions (429 rate limited, 404 not found, 503 upstream unavailable).
"""
import asyncio
from collections.abc import Iterable

from crypto_tracker.providers.core import (
    MarketDataError,
    NotFoundError,
    ProviderErrorMapper,
)
from crypto_tracker.providers.core.utils import normalize_crypto_id
from crypto_tracker.providers.crypto import MarketDataGatewayABC
from crypto_tracker.schemas import (
    CoinBasicInfo,
    CoinDetails,
    CoinPrice,
    CoinSummary,
    NewsArticle,
    PricePoint,
    SearchResult,
)

# Exceptions from the gateway we map to HTTP; all others propagate.
_GATEWAY_EXCEPTIONS: tuple[type[Exception], ...] = (
    MarketDataError,
    TimeoutError,
    asyncio.TimeoutError,
)


class CryptoService:
    """Thin service over the market-data gateway."""

    def __init__(
        self,
        gateway: MarketDataGatewayABC,
        error_mapper: ProviderErrorMapper,
    ) -> None:
        self._gateway = gateway
        self._error_mapper = error_mapper

    async def get_prices(self, coin_ids: Iterable[str]) -> dict[str, CoinPrice]:
        try:
            return await self._gateway.get_prices(coin_ids)
        except _GATEWAY_EXCEPTIONS as e:
            self._error_mapper.raise_http(e)

    async def get_top_coins(self, limit: int, page: int) -> list[CoinSummary]:
        try:
            return await self._gateway.get_top_coins(limit, page)
        except _GATEWAY_EXCEPTIONS as e:
            self._error_mapper.raise_http(e)

    async def search_coins(self, query: str) -> list[SearchResult]:
        try:
            return await self._gateway.search_coins(query)
        except _GATEWAY_EXCEPTIONS as e:
            self._error_mapper.raise_http(e)

    async def get_coin_details(self, coin_id: str) -> CoinDetails:
        try:
            return await self._gateway.get_coin_details(normalize_crypto_id(coin_id))
        except _GATEWAY_EXCEPTIONS as e:
            self._error_mapper.raise_http(e, symbol=coin_id)

    async def get_coin_price_history(self, coin_id: str, days: int) -> list[PricePoint]:
        try:
            return await self._gateway.get_coin_price_history(normalize_crypto_id(coin_id), days)
        except _GATEWAY_EXCEPTIONS as e:
            self._error_mapper.raise_http(e, symbol=coin_id)

    async def get_coins_basic_info(self, coin_ids: Iterable[str]) -> dict[str, CoinBasicInfo]:
        try:
            return await self._gateway.get_coins_basic_info(coin_ids)
        except _GATEWAY_EXCEPTIONS as e:
            self._error_mapper.raise_http(e)

    async def get_coin_market_data(self, coin_id: str) -> CoinSummary:
        """Market row for one coin; 404 when upstream has none."""
        try:
            row = await self._gateway.get_coin_market_data(normalize_crypto_id(coin_id))
        except _GATEWAY_EXCEPTIONS as e:
            self._error_mapper.raise_http(e, symbol=coin_id)
        if row is None:
            self._error_mapper.raise_http(
                NotFoundError(f"No market data for {coin_id}"), symbol=coin_id
            )
        return row

    async def get_news(self, limit: int) -> list[NewsArticle]:
        return await self._gateway.get_news(limit)
