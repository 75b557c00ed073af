"""Alerts service: owner-scoped alert CRUD with HTTP error mapping."""
import logging

from fastapi import HTTPException

from crypto_tracker.db.alert_store import SqlAlertStore
from crypto_tracker.db.models import PriceAlert
from crypto_tracker.db.user_store import SqlUserStore
from crypto_tracker.exceptions import AlertNotFoundError
from crypto_tracker.providers.crypto import MarketDataGatewayABC
from crypto_tracker.schemas.alerts import (
    CreateAlertRequest,
    NotificationSettings,
    PriceAlertRead,
    UpdateAlertRequest,
)

logger = logging.getLogger(__name__)


def _not_found(exc: AlertNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


class AlertsService:
    """Alert operations on behalf of one authenticated user per call."""

    def __init__(self, store: SqlAlertStore, gateway: MarketDataGatewayABC) -> None:
        self._store = store
        self._gateway = gateway

    async def create_alert(self, user_id: str, data: CreateAlertRequest) -> PriceAlertRead:
        alert = await self._store.create_alert(user_id, data)
        return PriceAlertRead.model_validate(alert)

    async def list_alerts(self, user_id: str) -> list[PriceAlertRead]:
        """Owner's alerts, newest first, with coin images when available."""
        alerts = await self._store.list_user_alerts(user_id)
        images = await self._coin_images(alerts)
        return [
            PriceAlertRead.model_validate(alert).model_copy(
                update={"coin_image": images.get(alert.coin_id)}
            )
            for alert in alerts
        ]

    async def update_alert(
        self, user_id: str, alert_id: str, data: UpdateAlertRequest
    ) -> PriceAlertRead:
        try:
            alert = await self._store.update_alert(user_id, alert_id, data)
        except AlertNotFoundError as e:
            raise _not_found(e) from e
        return PriceAlertRead.model_validate(alert)

    async def toggle_alert(self, user_id: str, alert_id: str, is_active: bool) -> PriceAlertRead:
        try:
            alert = await self._store.toggle_alert(user_id, alert_id, is_active)
        except AlertNotFoundError as e:
            raise _not_found(e) from e
        return PriceAlertRead.model_validate(alert)

    async def delete_alert(self, user_id: str, alert_id: str) -> None:
        try:
            await self._store.delete_alert(user_id, alert_id)
        except AlertNotFoundError as e:
            raise _not_found(e) from e

    async def _coin_images(self, alerts: list[PriceAlert]) -> dict[str, str | None]:
        coin_ids = {alert.coin_id for alert in alerts}
        if not coin_ids:
            return {}
        try:
            info = await self._gateway.get_coins_basic_info(coin_ids)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Could not load coin images for alerts: %s", exc)
            return {}
        return {coin_id: row.image_url for coin_id, row in info.items()}


class UsersService:
    """Notification preferences of the current user."""

    def __init__(self, store: SqlUserStore) -> None:
        self._store = store

    async def get_notification_settings(self, user_id: str) -> NotificationSettings:
        enabled = await self._store.is_email_notification_enabled(user_id)
        return NotificationSettings(email_notifications=enabled)

    async def update_notification_settings(
        self, user_id: str, settings: NotificationSettings
    ) -> NotificationSettings:
        await self._store.set_email_notifications(user_id, settings.email_notifications)
        return settings
