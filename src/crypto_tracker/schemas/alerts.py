"""Request and response payloads for /alerts and /users."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from crypto_tracker.db.models import AlertCondition

MIN_TARGET_PRICE = Decimal("0.00000001")


class CreateAlertRequest(BaseModel):
    """Body of POST /alerts."""

    coin_id: str = Field(min_length=1, max_length=100)
    coin_symbol: str = Field(min_length=1, max_length=20)
    coin_name: str = Field(min_length=1, max_length=100)
    condition: AlertCondition
    target_price: Decimal = Field(ge=MIN_TARGET_PRICE, max_digits=20, decimal_places=8)


class UpdateAlertRequest(BaseModel):
    """Body of PATCH /alerts/{id}; omitted fields are left unchanged."""

    condition: AlertCondition | None = None
    target_price: Decimal | None = Field(
        default=None, ge=MIN_TARGET_PRICE, max_digits=20, decimal_places=8
    )
    is_active: bool | None = None


class ToggleAlertRequest(BaseModel):
    """Body of PATCH /alerts/{id}/toggle."""

    is_active: bool


class PriceAlertRead(BaseModel):
    """Alert as returned to its owner."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    coin_id: str
    coin_symbol: str
    coin_name: str
    coin_image: str | None = None
    condition: AlertCondition
    target_price: float
    is_active: bool
    triggered_price: float | None = None
    triggered_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class NotificationSettings(BaseModel):
    """Email notification preference of the current user."""

    email_notifications: bool
