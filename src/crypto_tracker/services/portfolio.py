"""Portfolio service: holdings CRUD, live valuation and value history."""
import bisect
import logging
from datetime import datetime, timezone
from decimal import Decimal

from fastapi import HTTPException

from crypto_tracker.db.models import PortfolioHolding
from crypto_tracker.db.portfolio_store import SqlPortfolioStore
from crypto_tracker.exceptions import (
    BenchmarkNotFoundError,
    HoldingExistsError,
    HoldingNotFoundError,
)
from crypto_tracker.providers.crypto import MarketDataGatewayABC
from crypto_tracker.schemas import CoinBasicInfo, PricePoint
from crypto_tracker.schemas.portfolio import (
    BenchmarkRead,
    CreateHoldingRequest,
    HoldingRead,
    HoldingValue,
    PortfolioHistory,
    PortfolioHistoryPoint,
    PortfolioValue,
    UpdateHoldingRequest,
)

logger = logging.getLogger(__name__)

_VALUE_QUANTUM = Decimal("0.00000001")


def _iso_millis(timestamp_ms: int) -> str:
    stamp = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _closest_price(samples: list[PricePoint], stamps: list[int], timestamp: int) -> float:
    """Price of the sample nearest to timestamp; ties go to the earlier sample."""
    i = bisect.bisect_left(stamps, timestamp)
    if i == 0:
        return samples[0].price
    if i == len(stamps):
        return samples[-1].price
    before, after = samples[i - 1], samples[i]
    if after.timestamp - timestamp < timestamp - before.timestamp:
        return after.price
    return before.price


def value_history(
    holdings: list[PortfolioHolding], histories: dict[str, list[PricePoint]]
) -> list[PortfolioHistoryPoint]:
    """Value the holdings at every sample time seen in any coin's history.

    Each coin contributes its quantity times the price sampled closest to that
    time. Coins without history contribute nothing.
    """
    series = {
        coin_id: (points, [p.timestamp for p in points])
        for coin_id, points in histories.items()
        if points
    }
    timestamps = sorted({ts for _, stamps in series.values() for ts in stamps})
    history: list[PortfolioHistoryPoint] = []
    for ts in timestamps:
        total = 0.0
        for holding in holdings:
            samples = series.get(holding.coin_id)
            if samples is None:
                continue
            total += float(holding.quantity) * _closest_price(samples[0], samples[1], ts)
        history.append(
            PortfolioHistoryPoint(timestamp=ts, total_value=total, date=_iso_millis(ts))
        )
    return history


class PortfolioService:
    """Portfolio operations on behalf of one authenticated user per call."""

    def __init__(self, store: SqlPortfolioStore, gateway: MarketDataGatewayABC) -> None:
        self._store = store
        self._gateway = gateway

    async def list_holdings(self, user_id: str) -> list[HoldingRead]:
        """Owner's holdings, oldest first, with coin display fields when available."""
        holdings = await self._store.list_holdings(user_id)
        return await self._with_coin_info(holdings)

    async def add_holding(self, user_id: str, data: CreateHoldingRequest) -> HoldingRead:
        try:
            holding = await self._store.create_holding(user_id, data)
        except HoldingExistsError as e:
            raise HTTPException(
                status_code=409,
                detail="Holding for this coin already exists. Use update instead.",
            ) from e
        return (await self._with_coin_info([holding]))[0]

    async def update_holding(
        self, user_id: str, holding_id: str, data: UpdateHoldingRequest
    ) -> HoldingRead:
        try:
            holding = await self._store.update_holding(user_id, holding_id, data)
        except HoldingNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return (await self._with_coin_info([holding]))[0]

    async def remove_holding(self, user_id: str, holding_id: str) -> None:
        try:
            await self._store.delete_holding(user_id, holding_id)
        except HoldingNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

    async def get_portfolio_value(self, user_id: str) -> PortfolioValue:
        """Price every holding at the current market price.

        Coins the market does not price are valued at 0. Profit/loss is only
        reported for holdings with an average buy price.

        Raises:
            HTTPException: 503 when current prices cannot be fetched.
        """
        holdings = await self._store.list_holdings(user_id)
        if not holdings:
            return PortfolioValue(total_value=0.0, change_24h_value=0.0, holdings=[])

        coin_ids = {h.coin_id for h in holdings}
        try:
            prices = await self._gateway.get_prices(coin_ids)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Failed to fetch coin prices for user %s: %s", user_id, exc)
            raise HTTPException(
                status_code=503,
                detail="Failed to fetch current coin prices. Please try again later.",
            ) from exc

        reads = await self._with_coin_info(holdings)
        total = 0.0
        total_change = 0.0
        valued: list[HoldingValue] = []
        for holding, read in zip(holdings, reads):
            price = prices.get(holding.coin_id)
            current_price = price.usd if price is not None else 0.0
            quantity = float(holding.quantity)
            current_value = quantity * current_price
            total += current_value

            change_pct = price.usd_24h_change if price is not None else None
            change_value = None
            if change_pct is not None and change_pct > -100:
                change_value = current_value - current_value / (1 + change_pct / 100)
                total_change += change_value

            profit_loss = profit_loss_pct = None
            if holding.average_buy_price:
                cost = quantity * float(holding.average_buy_price)
                profit_loss = current_value - cost
                profit_loss_pct = profit_loss / cost * 100 if cost > 0 else 0.0

            valued.append(
                HoldingValue(
                    holding=read,
                    current_price=current_price,
                    current_value=current_value,
                    change_24h_value=change_value,
                    change_24h_percentage=change_pct,
                    profit_loss=profit_loss,
                    profit_loss_percentage=profit_loss_pct,
                )
            )

        previous = total - total_change
        return PortfolioValue(
            total_value=total,
            change_24h_value=total_change,
            change_24h_percentage=total_change / previous * 100 if previous > 0 else None,
            holdings=valued,
        )

    async def get_value_history(self, user_id: str, days: int = 7) -> PortfolioHistory:
        """Portfolio value over the last ``days`` days, from each coin's price history.

        A coin whose history cannot be fetched is left out of every point.
        """
        holdings = await self._store.list_holdings(user_id)
        if not holdings:
            return PortfolioHistory(data=[])

        histories: dict[str, list[PricePoint]] = {}
        for coin_id in sorted({h.coin_id for h in holdings}):
            try:
                histories[coin_id] = await self._gateway.get_coin_price_history(coin_id, days)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Failed to fetch price history for %s: %s", coin_id, exc)
                histories[coin_id] = []
        return PortfolioHistory(data=value_history(holdings, histories))

    async def take_snapshot(self, user_id: str) -> BenchmarkRead:
        """Store the current total value as the user's benchmark."""
        value = await self.get_portfolio_value(user_id)
        amount = Decimal(str(value.total_value)).quantize(_VALUE_QUANTUM)
        benchmark = await self._store.set_benchmark(user_id, amount)
        return BenchmarkRead.model_validate(benchmark)

    async def set_benchmark(self, user_id: str, value: Decimal) -> BenchmarkRead:
        benchmark = await self._store.set_benchmark(user_id, value)
        return BenchmarkRead.model_validate(benchmark)

    async def get_benchmark(self, user_id: str) -> BenchmarkRead | None:
        benchmark = await self._store.get_benchmark(user_id)
        return BenchmarkRead.model_validate(benchmark) if benchmark is not None else None

    async def delete_benchmark(self, user_id: str) -> None:
        try:
            await self._store.delete_benchmark(user_id)
        except BenchmarkNotFoundError as e:
            raise HTTPException(status_code=404, detail="No benchmark found") from e

    async def _with_coin_info(self, holdings: list[PortfolioHolding]) -> list[HoldingRead]:
        info = await self._coin_info({h.coin_id for h in holdings})
        reads = []
        for holding in holdings:
            read = HoldingRead.model_validate(holding)
            coin = info.get(holding.coin_id)
            if coin is not None:
                read = read.model_copy(
                    update={
                        "coin_name": coin.name,
                        "coin_symbol": coin.symbol.upper(),
                        "coin_image": coin.image_url,
                    }
                )
            reads.append(read)
        return reads

    async def _coin_info(self, coin_ids: set[str]) -> dict[str, CoinBasicInfo]:
        if not coin_ids:
            return {}
        try:
            return await self._gateway.get_coins_basic_info(coin_ids)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Returning holdings without coin info: %s", exc)
            return {}
