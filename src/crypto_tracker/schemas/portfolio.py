"""Request and response payloads for /portfolio."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

MIN_QUANTITY = Decimal("0.00000001")


class CreateHoldingRequest(BaseModel):
    """Body of POST /portfolio/holdings."""

    model_config = ConfigDict(extra="forbid")

    coin_id: str = Field(min_length=1, max_length=100)
    coin_symbol: str = Field(min_length=1, max_length=20)
    coin_name: str = Field(min_length=1, max_length=100)
    quantity: Decimal = Field(ge=MIN_QUANTITY, max_digits=28, decimal_places=8)
    average_buy_price: Decimal | None = Field(
        default=None, ge=0, max_digits=20, decimal_places=8
    )
    notes: str | None = Field(default=None, max_length=500)


class UpdateHoldingRequest(BaseModel):
    """Body of PUT /portfolio/holdings/{id}; omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    quantity: Decimal | None = Field(
        default=None, ge=MIN_QUANTITY, max_digits=28, decimal_places=8
    )
    average_buy_price: Decimal | None = Field(
        default=None, ge=0, max_digits=20, decimal_places=8
    )
    notes: str | None = Field(default=None, max_length=500)


class HoldingRead(BaseModel):
    """Holding as returned to its owner, with coin display fields when known."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    coin_id: str
    coin_symbol: str
    coin_name: str
    coin_image: str | None = None
    quantity: float
    average_buy_price: float | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class HoldingValue(BaseModel):
    """A holding priced at the current market price."""

    holding: HoldingRead
    current_price: float
    current_value: float
    change_24h_value: float | None = None
    change_24h_percentage: float | None = None
    profit_loss: float | None = None
    profit_loss_percentage: float | None = None


class PortfolioValue(BaseModel):
    """Total live value of a user's holdings."""

    total_value: float
    change_24h_value: float
    change_24h_percentage: float | None = None
    holdings: list[HoldingValue]


class PortfolioHistoryPoint(BaseModel):
    """Portfolio value at one historical sample time."""

    timestamp: int  # milliseconds since epoch
    total_value: float
    date: str  # ISO 8601, UTC


class PortfolioHistory(BaseModel):
    data: list[PortfolioHistoryPoint]


class SetBenchmarkRequest(BaseModel):
    """Body of PUT /portfolio/benchmark."""

    benchmark_value: Decimal = Field(ge=0, max_digits=28, decimal_places=8)


class BenchmarkRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    benchmark_value: float
    updated_at: datetime
