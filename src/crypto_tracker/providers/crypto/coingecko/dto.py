"""Data Transfer Objects for CoinGecko and news API responses.

DTOs validate the external API structure; ``to_*`` methods compile the
service-facing schema objects.
"""
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from crypto_tracker.schemas import (
    CoinBasicInfo,
    CoinDetails,
    CoinSummary,
    NewsArticle,
    PricePoint,
    SearchResult,
)


class CoinGeckoMarketDTO(BaseModel):
    """Row of /coins/markets."""

    model_config = ConfigDict(extra="ignore")

    id: str
    symbol: str
    name: str
    image: str | None = None
    current_price: float | None = None
    market_cap: float | None = None
    market_cap_rank: int | None = None
    total_volume: float | None = None
    price_change_percentage_24h: float | None = None
    price_change_percentage_1h_in_currency: float | None = None
    price_change_percentage_24h_in_currency: float | None = None
    price_change_percentage_7d_in_currency: float | None = None

    def to_summary(self) -> CoinSummary:
        change_24h = self.price_change_percentage_24h_in_currency
        if change_24h is None:
            change_24h = self.price_change_percentage_24h
        return CoinSummary(
            rank=self.market_cap_rank,
            id=self.id,
            name=self.name,
            symbol=self.symbol,
            image=self.image,
            current_price=self.current_price,
            price_change_percentage_1h=self.price_change_percentage_1h_in_currency,
            price_change_percentage_24h=change_24h,
            price_change_percentage_7d=self.price_change_percentage_7d_in_currency,
            market_cap=self.market_cap,
            total_volume=self.total_volume,
        )

    def to_basic_info(self) -> CoinBasicInfo:
        return CoinBasicInfo(name=self.name, symbol=self.symbol, image_url=self.image)


class CoinGeckoSearchCoinDTO(BaseModel):
    """Entry of /search ``coins``."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    symbol: str
    market_cap_rank: int | None = None
    thumb: str | None = None
    large: str | None = None

    def to_result(self) -> SearchResult:
        return SearchResult(**self.model_dump())


class CoinGeckoDetailsDTO(BaseModel):
    """Response of /coins/{id}."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    symbol: str
    description: dict[str, str | None] = Field(default_factory=dict)
    image: dict[str, str | None] = Field(default_factory=dict)
    links: dict[str, Any] = Field(default_factory=dict)
    market_data: dict[str, Any] | None = None
    tickers: list[dict[str, Any]] = Field(default_factory=list)

    def to_details(self) -> CoinDetails:
        return CoinDetails(
            id=self.id,
            name=self.name,
            symbol=self.symbol,
            description=self.description.get("en") or "",
            image={k: v for k, v in self.image.items() if v},
            links=self.links,
            market_data=self.market_data or {},
            tickers=self.tickers,
        )


def price_points_from_chart(prices: list[list[float]]) -> list[PricePoint]:
    """Convert /market_chart ``prices`` pairs into ascending PricePoints."""
    points: list[PricePoint] = []
    for pair in prices:
        if len(pair) < 2 or pair[1] is None:
            continue
        ts_ms = int(pair[0])
        stamp = datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc)
        points.append(
            PricePoint(
                timestamp=ts_ms,
                price=float(pair[1]),
                date=stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            )
        )
    points.sort(key=lambda p: p.timestamp)
    return points


class NewsArticleDTO(BaseModel):
    """Entry of the CryptoCompare news feed (``Data``)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | int
    title: str
    body: str = ""
    url: str
    image_url: str | None = Field(default=None, alias="imageurl")
    source: str | None = None
    published_on: int = 0
    categories: str = ""

    def to_article(self) -> NewsArticle:
        return NewsArticle(
            id=str(self.id),
            title=self.title,
            body=self.body,
            url=self.url,
            image_url=self.image_url,
            source=self.source,
            published_at=self.published_on,
            categories=[c for c in self.categories.split("|") if c],
        )
