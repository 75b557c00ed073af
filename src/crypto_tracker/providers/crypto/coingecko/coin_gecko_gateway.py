"""CoinGecko market-data gateway, cached and throttled."""
import logging
import os
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote

import httpx

from crypto_tracker.providers.core.exceptions import FetchErrorKind, UpstreamError
from crypto_tracker.providers.core.throttled_cache import ThrottledCache
from crypto_tracker.providers.core.utils import normalize_crypto_id
from crypto_tracker.providers.crypto.coingecko.dto import (
    CoinGeckoDetailsDTO,
    CoinGeckoMarketDTO,
    CoinGeckoSearchCoinDTO,
    NewsArticleDTO,
    price_points_from_chart,
)
from crypto_tracker.providers.crypto.coingecko.models import (
    CoinGeckoChartParams,
    CoinGeckoDetailsParams,
    CoinGeckoMarketsParams,
    CoinGeckoSimplePriceParams,
    NewsParams,
)
from crypto_tracker.providers.crypto.market_data_gateway_abc import MarketDataGatewayABC
from crypto_tracker.schemas import (
    CoinBasicInfo,
    CoinDetails,
    CoinPrice,
    CoinSummary,
    NewsArticle,
    PricePoint,
    SearchResult,
)

logger = logging.getLogger(__name__)

SEARCH_RESULT_LIMIT = 10
# Largest per_page CoinGecko accepts on /coins/markets.
MARKETS_PAGE_LIMIT = 250


async def _get_json(
    client: httpx.AsyncClient, path: str, params: dict[str, Any] | None = None
) -> Any:
    """GET path and decode JSON; upstream failures become typed UpstreamErrors."""
    try:
        response = await client.get(path, params=params)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise UpstreamError.from_http_status(e) from e
    except httpx.RequestError as e:
        raise UpstreamError(FetchErrorKind.OTHER, f"{path}: {e}") from e
    return response.json()


def _sorted_ids(coin_ids: Iterable[str]) -> list[str]:
    return sorted({normalize_crypto_id(c) for c in coin_ids if c and c.strip()})


class CoinGeckoGateway(MarketDataGatewayABC):
    """Market data via CoinGecko (prices, rankings, search, details, history)
    and CryptoCompare (news).

    Every upstream call goes through the shared ThrottledCache, so cached
    answers are served without network access and cache misses are
    serialized with the cache's inter-request delay.
    """

    BASE_URL = "https://api.coingecko.com/api/v3"
    PRO_BASE_URL = "https://pro-api.coingecko.com/api/v3"
    NEWS_BASE_URL = "https://min-api.cryptocompare.com"

    def __init__(
        self,
        cache: ThrottledCache,
        *,
        api_key: str | None = None,
        use_pro_api: bool = False,
        ttl: float | None = None,
        news_base_url: str | None = None,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
        news_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            cache: The process-wide ThrottledCache.
            api_key: CoinGecko API key. Defaults to COINGECKO_API_KEY env var.
            use_pro_api: Whether to use the Pro API endpoint.
            ttl: Entry lifetime in seconds; defaults to the cache's TTL.
            news_base_url: Base URL of the news feed.
            timeout: HTTP timeout in seconds for clients created here.
            client: Pre-built CoinGecko client (tests, custom transports).
            news_client: Pre-built news client.
        """
        self._cache = cache
        self._ttl = ttl
        self._api_key = api_key or os.getenv("COINGECKO_API_KEY")
        self._use_pro_api = use_pro_api or bool(self._api_key)

        if client is None:
            headers: dict[str, str] = {"Accept": "application/json"}
            if self._api_key:
                headers["x-cg-pro-api-key"] = self._api_key
            base = self.PRO_BASE_URL if self._use_pro_api else self.BASE_URL
            client = httpx.AsyncClient(base_url=base, headers=headers, timeout=timeout)
        if news_client is None:
            news_client = httpx.AsyncClient(
                base_url=news_base_url or self.NEWS_BASE_URL,
                headers={"Accept": "application/json"},
                timeout=timeout,
            )
        self._client = client
        self._news_client = news_client

    async def _cached(self, key: str, fetch, *, force_refresh: bool = False):
        return await self._cache.get_or_fetch(
            key, fetch, ttl=self._ttl, force_refresh=force_refresh
        )

    async def get_prices(self, coin_ids: Iterable[str]) -> dict[str, CoinPrice]:
        """Fetch current USD prices for a set of coins.

        Args:
            coin_ids: CoinGecko IDs; normalized, deduplicated and sorted so the
                same set always hits the same cache entry.

        Returns:
            Mapping of coin ID to price. Coins CoinGecko does not price are omitted.
        """
        ids = _sorted_ids(coin_ids)
        if not ids:
            return {}

        async def fetch() -> dict[str, CoinPrice]:
            params = CoinGeckoSimplePriceParams().model_dump() | {"ids": ",".join(ids)}
            data = await _get_json(self._client, "/simple/price", params)
            return {
                cid: CoinPrice.model_validate(row)
                for cid, row in data.items()
                if row and row.get("usd") is not None
            }

        return await self._cached(f"prices_{','.join(ids)}", fetch)

    async def get_top_coins(
        self, limit: int = 10, page: int = 1, *, force_refresh: bool = False
    ) -> list[CoinSummary]:
        """Fetch one page of coins ranked by market cap.

        Args:
            limit: Coins per page.
            page: 1-based page number.
            force_refresh: Bypass a fresh cache entry (used by the alert scheduler).

        Returns:
            Coin summaries in market-cap order.
        """
        async def fetch() -> list[CoinSummary]:
            params = CoinGeckoMarketsParams(per_page=limit, page=page).model_dump()
            data = await _get_json(self._client, "/coins/markets", params)
            return [CoinGeckoMarketDTO.model_validate(item).to_summary() for item in data]

        return await self._cached(
            f"top_coins_{limit}_{page}", fetch, force_refresh=force_refresh
        )

    async def search_coins(self, query: str) -> list[SearchResult]:
        """Search coins by name or symbol.

        Args:
            query: Free-text search term.

        Returns:
            At most SEARCH_RESULT_LIMIT matches, in CoinGecko's ranking order.
        """
        term = query.strip()

        async def fetch() -> list[SearchResult]:
            data = await _get_json(self._client, "/search", {"query": term})
            coins = data.get("coins", [])[:SEARCH_RESULT_LIMIT]
            return [CoinGeckoSearchCoinDTO.model_validate(c).to_result() for c in coins]

        return await self._cached(f"search_{term.lower()}", fetch)

    async def get_coin_details(self, coin_id: str) -> CoinDetails:
        """Fetch the full description and market data of one coin.

        Args:
            coin_id: CoinGecko ID (e.g., "bitcoin").

        Returns:
            CoinDetails for the coin.

        Raises:
            NotFoundError: CoinGecko does not know the coin.
        """
        cid = normalize_crypto_id(coin_id)

        async def fetch() -> CoinDetails:
            params = CoinGeckoDetailsParams().model_dump()
            data = await _get_json(self._client, f"/coins/{quote(cid, safe='')}", params)
            return CoinGeckoDetailsDTO.model_validate(data).to_details()

        return await self._cached(f"details_{cid}", fetch)

    async def get_coin_price_history(self, coin_id: str, days: int = 7) -> list[PricePoint]:
        """Fetch historical USD prices for a coin.

        Args:
            coin_id: CoinGecko ID (e.g., "bitcoin").
            days: Number of days of history.

        Returns:
            Price points ordered by timestamp.
        """
        cid = normalize_crypto_id(coin_id)

        async def fetch() -> list[PricePoint]:
            params = CoinGeckoChartParams(days=days).model_dump()
            data = await _get_json(
                self._client, f"/coins/{quote(cid, safe='')}/market_chart", params
            )
            return price_points_from_chart(data.get("prices", []))

        return await self._cached(f"history_{cid}_{days}", fetch)

    async def get_coins_basic_info(self, coin_ids: Iterable[str]) -> dict[str, CoinBasicInfo]:
        """Fetch name, symbol and image for a set of coins.

        IDs are requested in pages of MARKETS_PAGE_LIMIT, each cached on its own.

        Args:
            coin_ids: CoinGecko IDs.

        Returns:
            Mapping of coin ID to basic info. Unknown coins are omitted.
        """
        ids = _sorted_ids(coin_ids)
        info: dict[str, CoinBasicInfo] = {}
        for start in range(0, len(ids), MARKETS_PAGE_LIMIT):
            info.update(await self._basic_info_page(ids[start:start + MARKETS_PAGE_LIMIT]))
        return info

    async def _basic_info_page(self, ids: list[str]) -> dict[str, CoinBasicInfo]:
        async def fetch() -> dict[str, CoinBasicInfo]:
            params = CoinGeckoMarketsParams(per_page=len(ids)).model_dump() | {
                "ids": ",".join(ids),
            }
            data = await _get_json(self._client, "/coins/markets", params)
            rows = (CoinGeckoMarketDTO.model_validate(item) for item in data)
            return {row.id: row.to_basic_info() for row in rows}

        return await self._cached(f"basic_info_{','.join(ids)}", fetch)

    async def get_coin_market_data(self, coin_id: str) -> CoinSummary | None:
        """Fetch the market row of a single coin.

        Args:
            coin_id: CoinGecko ID (e.g., "bitcoin").

        Returns:
            CoinSummary, or None when CoinGecko returns no row for the ID.
        """
        cid = normalize_crypto_id(coin_id)

        async def fetch() -> CoinSummary | None:
            params = CoinGeckoMarketsParams(per_page=1).model_dump() | {"ids": cid}
            data = await _get_json(self._client, "/coins/markets", params)
            if not data:
                return None
            return CoinGeckoMarketDTO.model_validate(data[0]).to_summary()

        return await self._cached(f"market_{cid}", fetch)

    async def get_news(self, limit: int = 10) -> list[NewsArticle]:
        """Fetch the latest crypto news articles.

        Args:
            limit: Maximum number of articles to return.

        Returns:
            Newest articles first; an empty list if the feed is unavailable.
        """
        async def fetch() -> list[NewsArticle]:
            data = await _get_json(
                self._news_client, "/data/v2/news/", NewsParams().model_dump()
            )
            items = data.get("Data") or []
            return [NewsArticleDTO.model_validate(item).to_article() for item in items]

        try:
            articles = await self._cached("news_latest", fetch)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("News fetch failed, returning no articles: %s", exc)
            return []
        return articles[:limit]

    async def close(self) -> None:
        """Close the HTTP clients."""
        await self._client.aclose()
        await self._news_client.aclose()
