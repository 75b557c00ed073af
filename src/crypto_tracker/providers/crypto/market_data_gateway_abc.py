"""Abstract base class for cached market-data gateways."""
from abc import ABC, abstractmethod
from collections.abc import Iterable

from crypto_tracker.schemas import (
    CoinBasicInfo,
    CoinDetails,
    CoinPrice,
    CoinSummary,
    NewsArticle,
    PricePoint,
    SearchResult,
)


class MarketDataGatewayABC(ABC):
    """Typed accessors over one upstream market-data provider.

    Implementations route every upstream call through a ThrottledCache and
    raise RateLimitedError, NotFoundError or ServiceUnavailableError when no
    cached fallback exists.
    """

    @abstractmethod
    async def get_prices(self, coin_ids: Iterable[str]) -> dict[str, CoinPrice]:
        """USD price, 24h change and market cap per coin id."""

    @abstractmethod
    async def get_top_coins(
        self, limit: int = 10, page: int = 1, *, force_refresh: bool = False
    ) -> list[CoinSummary]:
        """Coins ranked by market cap, descending, as returned upstream."""

    @abstractmethod
    async def search_coins(self, query: str) -> list[SearchResult]:
        """Up to 10 coins matching a free-text query."""

    @abstractmethod
    async def get_coin_details(self, coin_id: str) -> CoinDetails:
        """Full coin profile. Raises NotFoundError for unknown ids."""

    @abstractmethod
    async def get_coin_price_history(self, coin_id: str, days: int = 7) -> list[PricePoint]:
        """Price samples for the last ``days`` days, ascending by timestamp."""

    @abstractmethod
    async def get_coins_basic_info(self, coin_ids: Iterable[str]) -> dict[str, CoinBasicInfo]:
        """Name, symbol and image per coin id."""

    @abstractmethod
    async def get_coin_market_data(self, coin_id: str) -> CoinSummary | None:
        """Market row for one coin, or None if upstream has none."""

    @abstractmethod
    async def get_news(self, limit: int = 10) -> list[NewsArticle]:
        """Latest news articles. Never raises; returns [] on failure."""

    async def close(self) -> None:
        """Release HTTP clients. Override if cleanup is needed."""
