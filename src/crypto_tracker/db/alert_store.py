"""SQLModel-backed store for price alerts."""
import asyncio
import logging
from decimal import Decimal, InvalidOperation, localcontext

from sqlalchemy.engine import Engine
from sqlmodel import col, select

from crypto_tracker.db.models import PriceAlert, utcnow
from crypto_tracker.db.sessions import get_session
from crypto_tracker.exceptions import AlertNotFoundError
from crypto_tracker.schemas.alerts import CreateAlertRequest, UpdateAlertRequest

logger = logging.getLogger(__name__)


# Matches the triggered_price column.
_TRIGGER_PRICE_QUANTUM = Decimal("1e-18")
_TRIGGER_PRICE_DIGITS = 38


def _to_decimal(price: float | Decimal) -> Decimal:
    value = price if isinstance(price, Decimal) else Decimal(str(price))
    try:
        with localcontext() as ctx:
            ctx.prec = _TRIGGER_PRICE_DIGITS
            return value.quantize(_TRIGGER_PRICE_QUANTUM)
    except InvalidOperation:
        logger.warning("Trigger price %s exceeds column precision; storing as is", value)
        return value


class SqlAlertStore:
    """Alert persistence. Blocking session work runs in a worker thread."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def create_alert(self, user_id: str, data: CreateAlertRequest) -> PriceAlert:
        return await asyncio.to_thread(self._create_alert_sync, user_id, data)

    async def list_user_alerts(self, user_id: str) -> list[PriceAlert]:
        return await asyncio.to_thread(self._list_user_alerts_sync, user_id)

    async def get_alert(self, user_id: str, alert_id: str) -> PriceAlert:
        return await asyncio.to_thread(self._get_alert_sync, user_id, alert_id)

    async def update_alert(
        self, user_id: str, alert_id: str, data: UpdateAlertRequest
    ) -> PriceAlert:
        return await asyncio.to_thread(self._update_alert_sync, user_id, alert_id, data)

    async def toggle_alert(self, user_id: str, alert_id: str, is_active: bool) -> PriceAlert:
        changes = UpdateAlertRequest(is_active=is_active)
        return await asyncio.to_thread(self._update_alert_sync, user_id, alert_id, changes)

    async def delete_alert(self, user_id: str, alert_id: str) -> None:
        await asyncio.to_thread(self._delete_alert_sync, user_id, alert_id)

    async def get_active_alerts(self) -> list[PriceAlert]:
        return await asyncio.to_thread(self._get_active_alerts_sync)

    async def mark_triggered(self, alert_id: str, price: float | Decimal) -> None:
        await asyncio.to_thread(self._mark_triggered_sync, alert_id, _to_decimal(price))

    def _create_alert_sync(self, user_id: str, data: CreateAlertRequest) -> PriceAlert:
        alert = PriceAlert(
            user_id=user_id,
            coin_id=data.coin_id.strip().lower(),
            coin_symbol=data.coin_symbol.strip().upper(),
            coin_name=data.coin_name.strip(),
            condition=data.condition,
            target_price=data.target_price,
            is_active=True,
        )
        with get_session(self._engine) as session:
            session.add(alert)
            session.flush()
            session.refresh(alert)
        logger.info("Created alert %s for user %s on %s", alert.id, user_id, alert.coin_id)
        return alert

    def _list_user_alerts_sync(self, user_id: str) -> list[PriceAlert]:
        with get_session(self._engine) as session:
            statement = (
                select(PriceAlert)
                .where(PriceAlert.user_id == user_id)
                .order_by(col(PriceAlert.created_at).desc())
            )
            return list(session.exec(statement).all())

    def _get_alert_sync(self, user_id: str, alert_id: str) -> PriceAlert:
        with get_session(self._engine) as session:
            alert = session.get(PriceAlert, alert_id)
            if alert is None or alert.user_id != user_id:
                raise AlertNotFoundError(alert_id)
            return alert

    def _update_alert_sync(
        self, user_id: str, alert_id: str, data: UpdateAlertRequest
    ) -> PriceAlert:
        with get_session(self._engine) as session:
            alert = session.get(PriceAlert, alert_id)
            if alert is None or alert.user_id != user_id:
                raise AlertNotFoundError(alert_id)
            for field, value in data.model_dump(exclude_none=True).items():
                setattr(alert, field, value)
            alert.updated_at = utcnow()
            session.add(alert)
            session.flush()
            session.refresh(alert)
            return alert

    def _delete_alert_sync(self, user_id: str, alert_id: str) -> None:
        with get_session(self._engine) as session:
            alert = session.get(PriceAlert, alert_id)
            if alert is None or alert.user_id != user_id:
                raise AlertNotFoundError(alert_id)
            session.delete(alert)
        logger.info("Deleted alert %s for user %s", alert_id, user_id)

    def _get_active_alerts_sync(self) -> list[PriceAlert]:
        with get_session(self._engine) as session:
            statement = select(PriceAlert).where(PriceAlert.is_active == True)  # noqa: E712
            return list(session.exec(statement).all())

    def _mark_triggered_sync(self, alert_id: str, price: Decimal) -> None:
        with get_session(self._engine) as session:
            alert = session.get(PriceAlert, alert_id)
            if alert is None:
                raise AlertNotFoundError(alert_id)
            now = utcnow()
            alert.is_active = False
            alert.triggered_price = price
            alert.triggered_at = now
            alert.updated_at = now
            session.add(alert)
