"""Database models for the crypto tracker service.

Only user/application state (alerts, holdings, preferences) is persisted.
Market data is fetched on demand and held in the in-process ThrottledCache;
it is not stored in the database.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertCondition(str, Enum):
    """Direction in which the price must cross the target."""

    ABOVE = "above"
    BELOW = "below"


class PriceAlert(SQLModel, table=True):
    """Price threshold alert owned by a user.

    ``is_active`` flips to False exactly once when the alert triggers (or when
    the owner toggles it off); ``triggered_price`` and ``triggered_at`` are
    written together in that same transition.
    """

    __tablename__ = "price_alerts"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(index=True)
    coin_id: str = Field(max_length=100)
    coin_symbol: str = Field(max_length=20)
    coin_name: str = Field(max_length=100)
    condition: AlertCondition
    target_price: Decimal = Field(max_digits=20, decimal_places=8)
    is_active: bool = Field(default=True, index=True)
    triggered_price: Decimal | None = Field(default=None, max_digits=38, decimal_places=18)
    triggered_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserProfile(SQLModel, table=True):
    """Locally cached contact details and notification preferences."""

    __tablename__ = "user_profiles"

    user_id: str = Field(primary_key=True)
    email: str | None = Field(default=None, index=True)
    email_notifications: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PortfolioHolding(SQLModel, table=True):
    """Amount of one coin held by a user. At most one row per user and coin."""

    __tablename__ = "portfolio_holdings"
    __table_args__ = (UniqueConstraint("user_id", "coin_id", name="uq_holding_user_coin"),)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(index=True)
    coin_id: str = Field(max_length=100)
    coin_symbol: str = Field(max_length=20)
    coin_name: str = Field(max_length=100)
    quantity: Decimal = Field(max_digits=28, decimal_places=8)
    average_buy_price: Decimal | None = Field(default=None, max_digits=20, decimal_places=8)
    notes: str | None = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PortfolioBenchmark(SQLModel, table=True):
    """Reference portfolio value a user compares the live value against."""

    __tablename__ = "portfolio_benchmarks"

    user_id: str = Field(primary_key=True)
    benchmark_value: Decimal = Field(max_digits=28, decimal_places=8)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
