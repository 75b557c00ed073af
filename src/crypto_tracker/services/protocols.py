"""Contracts the alert pipeline needs from its collaborators."""
from collections.abc import Sequence
from decimal import Decimal
from typing import Protocol

from pydantic import BaseModel

from crypto_tracker.db.models import PriceAlert
from crypto_tracker.schemas import CoinSummary


class IdentityUser(BaseModel):
    """User record as returned by an external identity provider."""

    user_id: str
    email: str | None = None
    name: str | None = None


class AlertStore(Protocol):
    """Persistence operations the scheduler depends on."""

    async def get_active_alerts(self) -> Sequence[PriceAlert]:
        """All alerts with is_active=True."""
        ...

    async def mark_triggered(self, alert_id: str, price: float | Decimal) -> None:
        """Deactivate the alert and record trigger price/time in one write.

        Raises AlertNotFoundError if the alert no longer exists.
        """
        ...


class UserStore(Protocol):
    """Local user contact details and preferences."""

    async def get_email(self, user_id: str) -> str | None: ...

    async def save_email(self, user_id: str, email: str) -> None: ...

    async def is_email_notification_enabled(self, user_id: str) -> bool: ...


class IdentityProvider(Protocol):
    """External identity lookup, used when the UserStore has no email."""

    async def get_user_by_id(self, user_id: str) -> IdentityUser: ...


class NotificationSender(Protocol):
    """Delivers a price-alert notification.

    Returns False when the recipient opted out. Raises NotificationError on
    failure.
    """

    async def send_price_alert(
        self, email: str, alert: PriceAlert, current_price: float
    ) -> bool: ...


class TopCoinsSource(Protocol):
    """The part of the market-data gateway the scheduler reads."""

    async def get_top_coins(
        self, limit: int = 10, page: int = 1, *, force_refresh: bool = False
    ) -> list[CoinSummary]: ...
