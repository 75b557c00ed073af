"""Tests for the alert scheduler tick and polling loop."""
import asyncio
from unittest.mock import AsyncMock

from conftest import make_alert, make_coin
from crypto_tracker.db.models import AlertCondition
from crypto_tracker.exceptions import IdentityLookupError, NotificationError
from crypto_tracker.services.alert_scheduler import AlertScheduler, TickReport
from crypto_tracker.services.protocols import IdentityUser


class InMemoryAlertStore:
    """Alert store double that deactivates alerts like the SQL store does."""

    def __init__(self, alerts):
        self.alerts = {alert.id: alert for alert in alerts}
        self.marked: list[tuple[str, float]] = []
        self.fail_mark_for: set[str] = set()

    async def get_active_alerts(self):
        return [alert for alert in self.alerts.values() if alert.is_active]

    async def mark_triggered(self, alert_id, price):
        if alert_id in self.fail_mark_for:
            raise RuntimeError("database is locked")
        self.alerts[alert_id].is_active = False
        self.marked.append((alert_id, price))


class InMemoryUserStore:
    def __init__(self, emails=None):
        self.emails = dict(emails or {})

    async def get_email(self, user_id):
        return self.emails.get(user_id)

    async def save_email(self, user_id, email):
        self.emails[user_id] = email

    async def is_email_notification_enabled(self, user_id):
        return True


def build_scheduler(
    alerts,
    coins,
    *,
    emails=None,
    identity=None,
    sender=None,
    market_data=None,
):
    store = InMemoryAlertStore(alerts)
    users = InMemoryUserStore(emails if emails is not None else {"u1": "u1@example.com"})
    if market_data is None:
        market_data = AsyncMock()
        market_data.get_top_coins.return_value = coins
    if identity is None:
        identity = AsyncMock()
        identity.get_user_by_id.side_effect = IdentityLookupError("not configured")
    if sender is None:
        sender = AsyncMock()
        sender.send_price_alert.return_value = True
    scheduler = AlertScheduler(store, market_data, users, identity, sender, interval=0.01)
    return scheduler, store, users, identity, sender, market_data


class TestRunOnce:
    async def test_fires_notifies_and_marks(self):
        alert = make_alert("a1", target_price="50000")
        scheduler, store, _, _, sender, market = build_scheduler(
            [alert], [make_coin("bitcoin", 50500.0)]
        )

        report = await scheduler.run_once()

        assert report == TickReport(checked=1, fired=1, notified=1, marked=1)
        market.get_top_coins.assert_awaited_once_with(250, 1)
        sender.send_price_alert.assert_awaited_once_with("u1@example.com", alert, 50500.0)
        assert store.marked == [("a1", 50500.0)]
        assert alert.is_active is False

    async def test_opted_out_owner_is_not_counted_as_notified(self):
        sender = AsyncMock()
        sender.send_price_alert.return_value = False
        alert = make_alert("a1", target_price="50000")
        scheduler, store, *_ = build_scheduler(
            [alert], [make_coin("bitcoin", 50500.0)], sender=sender
        )

        report = await scheduler.run_once()

        assert report == TickReport(checked=1, fired=1, skipped_opted_out=1, marked=1)
        assert store.marked == [("a1", 50500.0)]

    async def test_not_firing_leaves_alert_active(self):
        alert = make_alert("a1", target_price="50000")
        scheduler, store, _, _, sender, _ = build_scheduler(
            [alert], [make_coin("bitcoin", 49999.0)]
        )

        report = await scheduler.run_once()

        assert report.fired == 0
        sender.send_price_alert.assert_not_awaited()
        assert store.marked == []
        assert alert.is_active is True

    async def test_no_active_alerts_skips_market_call(self):
        scheduler, _, _, _, _, market = build_scheduler([], [make_coin("bitcoin", 1.0)])

        report = await scheduler.run_once()

        assert report == TickReport()
        market.get_top_coins.assert_not_awaited()

    async def test_market_failure_aborts_tick(self):
        market = AsyncMock()
        market.get_top_coins.side_effect = RuntimeError("upstream down")
        alert = make_alert()
        scheduler, store, _, _, sender, _ = build_scheduler([alert], [], market_data=market)

        report = await scheduler.run_once()

        assert report.aborted is True
        sender.send_price_alert.assert_not_awaited()
        assert alert.is_active is True

    async def test_empty_snapshot_aborts_tick(self):
        scheduler, _, _, _, sender, _ = build_scheduler([make_alert()], [])

        report = await scheduler.run_once()

        assert report.aborted is True
        sender.send_price_alert.assert_not_awaited()

    async def test_alert_store_failure_aborts_tick(self):
        scheduler, store, *_ = build_scheduler([make_alert()], [make_coin("bitcoin", 1.0)])
        store.get_active_alerts = AsyncMock(side_effect=RuntimeError("db down"))

        report = await scheduler.run_once()

        assert report.aborted is True

    async def test_coin_outside_snapshot_is_skipped(self):
        alert = make_alert(coin_id="tiny-coin", target_price="0.0001")
        scheduler, store, *_ = build_scheduler([alert], [make_coin("bitcoin", 60000.0)])

        report = await scheduler.run_once()

        assert report.fired == 0
        assert store.marked == []

    async def test_fires_at_most_once(self):
        alert = make_alert("a1", target_price="50000")
        scheduler, store, _, _, sender, _ = build_scheduler(
            [alert], [make_coin("bitcoin", 51000.0)]
        )

        await scheduler.run_once()
        second = await scheduler.run_once()

        assert second.checked == 0
        assert sender.send_price_alert.await_count == 1
        assert len(store.marked) == 1


class TestEmailResolution:
    async def test_falls_back_to_identity_provider_and_saves_email(self):
        identity = AsyncMock()
        identity.get_user_by_id.return_value = IdentityUser(
            user_id="u1", email="idp@example.com"
        )
        alert = make_alert("a1")
        scheduler, store, users, _, sender, _ = build_scheduler(
            [alert], [make_coin("bitcoin", 60000.0)], emails={}, identity=identity
        )

        report = await scheduler.run_once()

        identity.get_user_by_id.assert_awaited_once_with("u1")
        sender.send_price_alert.assert_awaited_once_with("idp@example.com", alert, 60000.0)
        assert users.emails == {"u1": "idp@example.com"}
        assert report.marked == 1

    async def test_no_email_anywhere_leaves_alert_active(self):
        alert = make_alert("a1")
        scheduler, store, _, _, sender, _ = build_scheduler(
            [alert], [make_coin("bitcoin", 60000.0)], emails={}
        )

        report = await scheduler.run_once()

        assert report.skipped_no_email == 1
        sender.send_price_alert.assert_not_awaited()
        assert store.marked == []
        assert alert.is_active is True

    async def test_identity_user_without_email_is_skipped(self):
        identity = AsyncMock()
        identity.get_user_by_id.return_value = IdentityUser(user_id="u1")
        scheduler, store, *_ = build_scheduler(
            [make_alert()], [make_coin("bitcoin", 60000.0)], emails={}, identity=identity
        )

        report = await scheduler.run_once()

        assert report.skipped_no_email == 1
        assert store.marked == []


class TestFailureIsolation:
    async def test_send_failure_still_marks_triggered(self):
        sender = AsyncMock()
        sender.send_price_alert.side_effect = NotificationError("smtp down")
        alert = make_alert("a1")
        scheduler, store, *_ = build_scheduler(
            [alert], [make_coin("bitcoin", 60000.0)], sender=sender
        )

        report = await scheduler.run_once()

        assert report.notified == 0
        assert report.marked == 1
        assert store.marked == [("a1", 60000.0)]

    async def test_one_failing_alert_does_not_stop_others(self):
        first = make_alert("a1", user_id="u1")
        second = make_alert("a2", user_id="u2", coin_id="ethereum",
                            condition=AlertCondition.BELOW, target_price="2000")
        scheduler, store, *_ = build_scheduler(
            [first, second],
            [make_coin("bitcoin", 60000.0), make_coin("ethereum", 1500.0, rank=2)],
            emails={"u1": "u1@example.com", "u2": "u2@example.com"},
        )
        store.fail_mark_for.add("a1")

        report = await scheduler.run_once()

        assert report.fired == 2
        assert report.failed == 1
        assert store.marked == [("a2", 1500.0)]
        assert first.is_active is True

    async def test_unexpected_error_in_email_lookup_is_contained(self):
        alert = make_alert("a1")
        scheduler, store, users, *_ = build_scheduler(
            [alert], [make_coin("bitcoin", 60000.0)]
        )
        users.get_email = AsyncMock(side_effect=RuntimeError("db down"))

        report = await scheduler.run_once()

        # Identity provider is unconfigured too, so no email is found.
        assert report.skipped_no_email == 1
        assert report.failed == 0


class TestLoop:
    async def test_start_and_stop_runs_ticks(self):
        scheduler, *_ = build_scheduler([], [])
        ticks = asyncio.Event()
        scheduler.run_once = AsyncMock(side_effect=lambda: ticks.set())

        scheduler.start()
        assert scheduler.running
        await asyncio.wait_for(ticks.wait(), timeout=1.0)
        await scheduler.stop()

        assert not scheduler.running
        assert scheduler.run_once.await_count >= 1

    async def test_loop_survives_tick_errors(self):
        scheduler, *_ = build_scheduler([], [])
        calls = 0
        two_ticks = asyncio.Event()

        async def flaky():
            nonlocal calls
            calls += 1
            if calls >= 2:
                two_ticks.set()
            raise RuntimeError("tick failed")

        scheduler.run_once = flaky
        scheduler.start()
        await asyncio.wait_for(two_ticks.wait(), timeout=1.0)
        await scheduler.stop()

        assert calls >= 2

    async def test_tick_deadline_cancels_hung_tick(self):
        scheduler, *_ = build_scheduler([], [])
        scheduler._tick_timeout = 0.01
        calls = 0
        second_tick = asyncio.Event()

        async def hang():
            nonlocal calls
            calls += 1
            if calls >= 2:
                second_tick.set()
            await asyncio.sleep(10)

        scheduler.run_once = hang
        scheduler.start()
        await asyncio.wait_for(second_tick.wait(), timeout=1.0)
        await scheduler.stop()

        assert calls >= 2

    async def test_stop_before_first_tick(self):
        scheduler, *_ = build_scheduler([], [])
        scheduler.run_once = AsyncMock()
        scheduler._interval = 10.0

        scheduler.start()
        await scheduler.stop()

        scheduler.run_once.assert_not_awaited()
