"""Decides which active alerts fire against a price snapshot. No I/O."""
import logging
import math
from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple

from crypto_tracker.db.models import AlertCondition, PriceAlert

logger = logging.getLogger(__name__)


class FiringAlert(NamedTuple):
    alert: PriceAlert
    trigger_price: float


def _as_price(value: Any) -> float | None:
    """Return value as a finite float, or None if it is not a usable number."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _target(alert: PriceAlert) -> float | None:
    raw = getattr(alert, "target_price", None)
    if raw is None:
        return None
    try:
        number = float(Decimal(str(raw)))
    except (InvalidOperation, ValueError):
        return None
    return number if math.isfinite(number) else None


def _condition(alert: PriceAlert) -> AlertCondition | None:
    raw = getattr(alert, "condition", None)
    try:
        return AlertCondition(raw) if raw else None
    except ValueError:
        return None


def should_trigger(condition: AlertCondition, price: float, target: float) -> bool:
    """Inclusive threshold check: above fires at price >= target, below at <=."""
    if condition is AlertCondition.ABOVE:
        return price >= target
    return price <= target


def evaluate(
    alerts: Iterable[PriceAlert], prices: Mapping[str, Any]
) -> list[FiringAlert]:
    """Return every alert whose condition holds at the current price.

    Alerts missing coin_id, target_price or condition are logged and skipped,
    as are alerts whose coin has no numeric price in ``prices``.
    """
    firing: list[FiringAlert] = []
    for alert in alerts:
        coin_id = getattr(alert, "coin_id", None)
        target = _target(alert)
        condition = _condition(alert)
        if not coin_id or target is None or condition is None:
            logger.warning("Invalid alert data, skipping: %r", alert)
            continue

        price = _as_price(prices.get(coin_id))
        if price is None:
            logger.warning("No valid price found for coin %s", coin_id)
            continue

        if should_trigger(condition, price, target):
            logger.info(
                "Alert %s triggered for %s: %s %s %s",
                getattr(alert, "id", None),
                coin_id,
                price,
                condition.value,
                target,
            )
            firing.append(FiringAlert(alert, price))
    return firing
