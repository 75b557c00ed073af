"""Shared fixtures and builders for the crypto_tracker tests."""
from decimal import Decimal

import pytest

from crypto_tracker.db.models import AlertCondition, PriceAlert
from crypto_tracker.db.sessions import create_db_engine, init_db
from crypto_tracker.schemas import CoinSummary


def make_alert(
    alert_id: str = "a1",
    *,
    user_id: str = "u1",
    coin_id: str = "bitcoin",
    condition: AlertCondition | str = AlertCondition.ABOVE,
    target_price: str | float = "50000",
    is_active: bool = True,
) -> PriceAlert:
    return PriceAlert(
        id=alert_id,
        user_id=user_id,
        coin_id=coin_id,
        coin_symbol=coin_id[:3].upper(),
        coin_name=coin_id.capitalize(),
        condition=condition,
        target_price=Decimal(str(target_price)),
        is_active=is_active,
    )


def make_coin(coin_id: str, price: float | None, rank: int = 1) -> CoinSummary:
    return CoinSummary(
        rank=rank,
        id=coin_id,
        name=coin_id.capitalize(),
        symbol=coin_id[:3],
        current_price=price,
    )


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables."""
    db_engine = create_db_engine("sqlite://")
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()
