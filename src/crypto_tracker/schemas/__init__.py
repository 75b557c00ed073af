"""Pydantic schemas for API and runtime use. Not persisted to DB."""
from crypto_tracker.schemas.market import (
    CoinBasicInfo,
    CoinDetails,
    CoinPrice,
    CoinSummary,
    NewsArticle,
    PricePoint,
    PricesRequest,
    SearchResult,
)

__all__ = [
    "CoinBasicInfo",
    "CoinDetails",
    "CoinPrice",
    "CoinSummary",
    "NewsArticle",
    "PricePoint",
    "PricesRequest",
    "SearchResult",
]
