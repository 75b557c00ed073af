"""Portfolio routes, scoped to the calling user."""
from dependency_injector.wiring import inject
from fastapi import APIRouter, Query, Response

from crypto_tracker.container import PortfolioServiceDep
from crypto_tracker.deps import CurrentUserId
from crypto_tracker.schemas.portfolio import (
    BenchmarkRead,
    CreateHoldingRequest,
    HoldingRead,
    PortfolioHistory,
    PortfolioValue,
    SetBenchmarkRequest,
    UpdateHoldingRequest,
)

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.get("/holdings", response_model=list[HoldingRead])
@inject
async def list_holdings(
    user_id: CurrentUserId, service: PortfolioServiceDep
) -> list[HoldingRead]:
    return await service.list_holdings(user_id)


@router.post("/holdings", response_model=HoldingRead, status_code=201)
@inject
async def add_holding(
    body: CreateHoldingRequest,
    user_id: CurrentUserId,
    service: PortfolioServiceDep,
) -> HoldingRead:
    """Add a coin to the caller's portfolio. One holding per coin."""
    return await service.add_holding(user_id, body)


@router.put("/holdings/{holding_id}", response_model=HoldingRead)
@inject
async def update_holding(
    holding_id: str,
    body: UpdateHoldingRequest,
    user_id: CurrentUserId,
    service: PortfolioServiceDep,
) -> HoldingRead:
    return await service.update_holding(user_id, holding_id, body)


@router.delete("/holdings/{holding_id}", status_code=204)
@inject
async def remove_holding(
    holding_id: str,
    user_id: CurrentUserId,
    service: PortfolioServiceDep,
) -> Response:
    await service.remove_holding(user_id, holding_id)
    return Response(status_code=204)


@router.get("/value", response_model=PortfolioValue)
@inject
async def get_portfolio_value(
    user_id: CurrentUserId, service: PortfolioServiceDep
) -> PortfolioValue:
    """Live value, 24h change and profit/loss of every holding."""
    return await service.get_portfolio_value(user_id)


@router.get("/value-history", response_model=PortfolioHistory)
@inject
async def get_value_history(
    user_id: CurrentUserId,
    service: PortfolioServiceDep,
    days: int = Query(default=7, ge=1, le=365, description="Days of history"),
) -> PortfolioHistory:
    return await service.get_value_history(user_id, days)


@router.post("/snapshot", response_model=BenchmarkRead)
@inject
async def take_snapshot(user_id: CurrentUserId, service: PortfolioServiceDep) -> BenchmarkRead:
    """Save the current total value as the caller's benchmark."""
    return await service.take_snapshot(user_id)


@router.get("/benchmark", response_model=BenchmarkRead | None)
@inject
async def get_benchmark(
    user_id: CurrentUserId, service: PortfolioServiceDep
) -> BenchmarkRead | None:
    return await service.get_benchmark(user_id)


@router.put("/benchmark", response_model=BenchmarkRead)
@inject
async def set_benchmark(
    body: SetBenchmarkRequest,
    user_id: CurrentUserId,
    service: PortfolioServiceDep,
) -> BenchmarkRead:
    return await service.set_benchmark(user_id, body.benchmark_value)


@router.delete("/benchmark", status_code=204)
@inject
async def delete_benchmark(user_id: CurrentUserId, service: PortfolioServiceDep) -> Response:
    await service.delete_benchmark(user_id)
    return Response(status_code=204)
