"""Cryptocurrency market data routes (CoinGecko, CryptoCompare news).

Thin HTTP handlers: CryptoService owns gateway calls and error mapping.
"""
from dependency_injector.wiring import inject
from fastapi import APIRouter, HTTPException, Query

from crypto_tracker.container import CryptoServiceDep
from crypto_tracker.providers.core.utils import parse_id_list
from crypto_tracker.schemas import (
    CoinBasicInfo,
    CoinDetails,
    CoinPrice,
    CoinSummary,
    NewsArticle,
    PricePoint,
    PricesRequest,
    SearchResult,
)

router = APIRouter(prefix="/crypto", tags=["crypto"])

# Route order: fixed paths before /{coin_id} so they are matched first.


@router.post("/prices", response_model=dict[str, CoinPrice])
@inject
async def get_prices(body: PricesRequest, service: CryptoServiceDep) -> dict[str, CoinPrice]:
    """Current USD price, 24h change and market cap for the given coin ids."""
    coin_ids = parse_id_list(",".join(body.coin_ids))
    if not coin_ids:
        raise HTTPException(status_code=400, detail="At least one coin id is required")
    return await service.get_prices(coin_ids)


@router.get("/top", response_model=list[CoinSummary])
@inject
async def get_top_coins(
    service: CryptoServiceDep,
    limit: int = Query(default=10, ge=1, le=250, description="Coins per page"),
    page: int = Query(default=1, ge=1, description="Page number"),
) -> list[CoinSummary]:
    """Coins ranked by market cap."""
    return await service.get_top_coins(limit, page)


@router.get("/search", response_model=list[SearchResult])
@inject
async def search_coins(
    service: CryptoServiceDep,
    q: str = Query(min_length=1, description="Name or symbol to search for"),
) -> list[SearchResult]:
    """Up to 10 coins matching the query."""
    query = q.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Search query is required")
    return await service.search_coins(query)


@router.get("/news/latest", response_model=list[NewsArticle])
@inject
async def get_latest_news(
    service: CryptoServiceDep,
    limit: int = Query(default=10, ge=1, le=100, description="Max articles"),
) -> list[NewsArticle]:
    """Latest crypto news; empty when the news feed is unavailable."""
    return await service.get_news(limit)


@router.get("/basic-info", response_model=dict[str, CoinBasicInfo])
@inject
async def get_coins_basic_info(
    service: CryptoServiceDep,
    ids: str = Query(description="Comma-separated CoinGecko ids"),
) -> dict[str, CoinBasicInfo]:
    """Name, symbol and image for each requested coin."""
    coin_ids = parse_id_list(ids)
    if not coin_ids:
        raise HTTPException(status_code=400, detail="At least one coin id is required")
    return await service.get_coins_basic_info(coin_ids)


@router.get("/{coin_id}/history", response_model=list[PricePoint])
@inject
async def get_coin_price_history(
    coin_id: str,
    service: CryptoServiceDep,
    days: int = Query(default=7, ge=1, le=365, description="Number of days of history"),
) -> list[PricePoint]:
    """Price points ordered by timestamp, oldest first."""
    return await service.get_coin_price_history(coin_id, days)


@router.get("/{coin_id}/market", response_model=CoinSummary)
@inject
async def get_coin_market_data(coin_id: str, service: CryptoServiceDep) -> CoinSummary:
    """Market row (price, changes, market cap, volume) for one coin."""
    return await service.get_coin_market_data(coin_id)


@router.get("/{coin_id}", response_model=CoinDetails)
@inject
async def get_coin_details(coin_id: str, service: CryptoServiceDep) -> CoinDetails:
    """Full coin details.

    Args:
        coin_id: CoinGecko ID (e.g., "bitcoin", "ethereum", "solana").
    """
    return await service.get_coin_details(coin_id)
