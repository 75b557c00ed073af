"""SQLModel-backed store for portfolio holdings and benchmarks."""
import asyncio
import logging
from decimal import Decimal

from sqlalchemy.engine import Engine
from sqlmodel import col, select

from crypto_tracker.db.models import PortfolioBenchmark, PortfolioHolding, utcnow
from crypto_tracker.db.sessions import get_session
from crypto_tracker.exceptions import (
    BenchmarkNotFoundError,
    HoldingExistsError,
    HoldingNotFoundError,
)
from crypto_tracker.schemas.portfolio import CreateHoldingRequest, UpdateHoldingRequest

logger = logging.getLogger(__name__)


class SqlPortfolioStore:
    """Holdings and benchmarks, always scoped to their owner."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def create_holding(
        self, user_id: str, data: CreateHoldingRequest
    ) -> PortfolioHolding:
        """Add a holding.

        Raises:
            HoldingExistsError: The user already holds this coin.
        """
        return await asyncio.to_thread(self._create_holding_sync, user_id, data)

    async def list_holdings(self, user_id: str) -> list[PortfolioHolding]:
        return await asyncio.to_thread(self._list_holdings_sync, user_id)

    async def update_holding(
        self, user_id: str, holding_id: str, data: UpdateHoldingRequest
    ) -> PortfolioHolding:
        return await asyncio.to_thread(self._update_holding_sync, user_id, holding_id, data)

    async def delete_holding(self, user_id: str, holding_id: str) -> None:
        await asyncio.to_thread(self._delete_holding_sync, user_id, holding_id)

    async def get_benchmark(self, user_id: str) -> PortfolioBenchmark | None:
        return await asyncio.to_thread(self._get_benchmark_sync, user_id)

    async def set_benchmark(self, user_id: str, value: Decimal) -> PortfolioBenchmark:
        return await asyncio.to_thread(self._set_benchmark_sync, user_id, value)

    async def delete_benchmark(self, user_id: str) -> None:
        await asyncio.to_thread(self._delete_benchmark_sync, user_id)

    def _create_holding_sync(
        self, user_id: str, data: CreateHoldingRequest
    ) -> PortfolioHolding:
        coin_id = data.coin_id.strip().lower()
        with get_session(self._engine) as session:
            existing = session.exec(
                select(PortfolioHolding).where(
                    PortfolioHolding.user_id == user_id,
                    PortfolioHolding.coin_id == coin_id,
                )
            ).first()
            if existing is not None:
                logger.warning("Holding for %s already exists for user %s", coin_id, user_id)
                raise HoldingExistsError(coin_id)
            holding = PortfolioHolding(
                user_id=user_id,
                coin_id=coin_id,
                coin_symbol=data.coin_symbol.strip().upper(),
                coin_name=data.coin_name.strip(),
                quantity=data.quantity,
                average_buy_price=data.average_buy_price,
                notes=data.notes,
            )
            session.add(holding)
            session.flush()
            session.refresh(holding)
        logger.info("Added holding %s for user %s on %s", holding.id, user_id, coin_id)
        return holding

    def _list_holdings_sync(self, user_id: str) -> list[PortfolioHolding]:
        with get_session(self._engine) as session:
            statement = (
                select(PortfolioHolding)
                .where(PortfolioHolding.user_id == user_id)
                .order_by(col(PortfolioHolding.created_at))
            )
            return list(session.exec(statement).all())

    def _update_holding_sync(
        self, user_id: str, holding_id: str, data: UpdateHoldingRequest
    ) -> PortfolioHolding:
        with get_session(self._engine) as session:
            holding = session.get(PortfolioHolding, holding_id)
            if holding is None or holding.user_id != user_id:
                raise HoldingNotFoundError(holding_id)
            for field, value in data.model_dump(exclude_unset=True).items():
                if field == "quantity" and value is None:
                    continue
                setattr(holding, field, value)
            holding.updated_at = utcnow()
            session.add(holding)
            session.flush()
            session.refresh(holding)
            return holding

    def _delete_holding_sync(self, user_id: str, holding_id: str) -> None:
        with get_session(self._engine) as session:
            holding = session.get(PortfolioHolding, holding_id)
            if holding is None or holding.user_id != user_id:
                raise HoldingNotFoundError(holding_id)
            session.delete(holding)
        logger.info("Removed holding %s for user %s", holding_id, user_id)

    def _get_benchmark_sync(self, user_id: str) -> PortfolioBenchmark | None:
        with get_session(self._engine) as session:
            return session.get(PortfolioBenchmark, user_id)

    def _set_benchmark_sync(self, user_id: str, value: Decimal) -> PortfolioBenchmark:
        with get_session(self._engine) as session:
            benchmark = session.get(PortfolioBenchmark, user_id)
            if benchmark is None:
                benchmark = PortfolioBenchmark(user_id=user_id, benchmark_value=value)
            else:
                benchmark.benchmark_value = value
                benchmark.updated_at = utcnow()
            session.add(benchmark)
            session.flush()
            session.refresh(benchmark)
            return benchmark

    def _delete_benchmark_sync(self, user_id: str) -> None:
        with get_session(self._engine) as session:
            benchmark = session.get(PortfolioBenchmark, user_id)
            if benchmark is None:
                raise BenchmarkNotFoundError(f"No benchmark for user '{user_id}'")
            session.delete(benchmark)
        logger.info("Deleted benchmark for user %s", user_id)
