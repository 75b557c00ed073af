"""Tests for alert evaluation against a price snapshot."""
from decimal import Decimal

import pytest

from conftest import make_alert
from crypto_tracker.db.models import AlertCondition
from crypto_tracker.services.alert_evaluator import evaluate, should_trigger


class TestShouldTrigger:
    @pytest.mark.parametrize(
        "price,expected", [(99.99, False), (100.0, True), (100.01, True)]
    )
    def test_above_is_inclusive(self, price, expected):
        assert should_trigger(AlertCondition.ABOVE, price, 100.0) is expected

    @pytest.mark.parametrize(
        "price,expected", [(100.01, False), (100.0, True), (99.99, True)]
    )
    def test_below_is_inclusive(self, price, expected):
        assert should_trigger(AlertCondition.BELOW, price, 100.0) is expected


class TestEvaluate:
    def test_returns_firing_alerts_with_trigger_price(self):
        above = make_alert("a1", coin_id="bitcoin", target_price="50000")
        below = make_alert(
            "a2", coin_id="ethereum", condition=AlertCondition.BELOW, target_price="2000"
        )
        quiet = make_alert("a3", coin_id="solana", target_price="500")

        firing = evaluate(
            [above, below, quiet],
            {"bitcoin": 50500.0, "ethereum": 1999.5, "solana": 120.0},
        )

        assert [(f.alert.id, f.trigger_price) for f in firing] == [
            ("a1", 50500.0),
            ("a2", 1999.5),
        ]

    def test_decimal_target_compared_numerically(self):
        alert = make_alert(target_price=Decimal("0.00001234"), coin_id="pepe")
        assert evaluate([alert], {"pepe": 0.00001234})

    def test_missing_price_is_skipped(self):
        assert evaluate([make_alert(coin_id="dogecoin")], {"bitcoin": 1e6}) == []

    @pytest.mark.parametrize("price", [None, "50000", True, float("nan"), float("inf")])
    def test_non_numeric_price_is_skipped(self, price):
        assert evaluate([make_alert(target_price="1")], {"bitcoin": price}) == []

    def test_zero_price_is_a_valid_number(self):
        alert = make_alert(condition=AlertCondition.BELOW, target_price="0.01")
        assert len(evaluate([alert], {"bitcoin": 0})) == 1

    def test_invalid_alerts_are_skipped_not_raised(self):
        no_coin = make_alert("bad1", coin_id="")
        no_target = make_alert("bad2")
        no_target.target_price = None
        bad_condition = make_alert("bad3", condition="sideways")
        good = make_alert("ok")

        firing = evaluate([no_coin, no_target, bad_condition, good], {"bitcoin": 60000.0})

        assert [f.alert.id for f in firing] == ["ok"]

    def test_empty_inputs(self):
        assert evaluate([], {"bitcoin": 1.0}) == []
        assert evaluate([make_alert()], {}) == []
