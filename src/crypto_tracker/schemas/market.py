"""Market-data payloads returned by the gateway and the /crypto routes."""
from typing import Any

from pydantic import BaseModel, Field


class CoinPrice(BaseModel):
    """Simple USD price row (/simple/price)."""

    usd: float
    usd_24h_change: float | None = None
    usd_market_cap: float | None = None


class CoinSummary(BaseModel):
    """One row of the market-cap ranking (/coins/markets)."""

    rank: int | None = None
    id: str
    name: str
    symbol: str
    image: str | None = None
    current_price: float | None = None
    price_change_percentage_1h: float | None = None
    price_change_percentage_24h: float | None = None
    price_change_percentage_7d: float | None = None
    market_cap: float | None = None
    total_volume: float | None = None


class SearchResult(BaseModel):
    """A coin matched by free-text search."""

    id: str
    name: str
    symbol: str
    market_cap_rank: int | None = None
    thumb: str | None = None
    large: str | None = None


class CoinDetails(BaseModel):
    """Full coin profile (/coins/{id})."""

    id: str
    name: str
    symbol: str
    description: str = ""
    image: dict[str, str] = Field(default_factory=dict)
    links: dict[str, Any] = Field(default_factory=dict)
    market_data: dict[str, Any] = Field(default_factory=dict)
    tickers: list[dict[str, Any]] = Field(default_factory=list)


class PricePoint(BaseModel):
    """A single historical price sample."""

    timestamp: int  # milliseconds since epoch
    price: float
    date: str  # ISO 8601, UTC


class CoinBasicInfo(BaseModel):
    """Display fields for a coin."""

    name: str
    symbol: str
    image_url: str | None = None


class NewsArticle(BaseModel):
    """A crypto news article."""

    id: str
    title: str
    body: str = ""
    url: str
    image_url: str | None = None
    source: str | None = None
    published_at: int  # seconds since epoch
    categories: list[str] = Field(default_factory=list)


class PricesRequest(BaseModel):
    """Body of POST /crypto/prices."""

    coin_ids: list[str] = Field(min_length=1, max_length=250)
