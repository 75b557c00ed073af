"""Periodic price-alert evaluation.

Each tick pulls active alerts, takes one price snapshot from the market-data
gateway, evaluates the alerts and, for every firing alert, notifies the owner
and marks the alert triggered. Failures are contained per tick and per alert;
the loop itself never stops on an error.
"""
import asyncio
import logging
from dataclasses import dataclass

from crypto_tracker.db.models import PriceAlert
from crypto_tracker.services.alert_evaluator import evaluate
from crypto_tracker.services.protocols import (
    AlertStore,
    IdentityProvider,
    NotificationSender,
    TopCoinsSource,
    UserStore,
)

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    """What one tick did. ``aborted`` is set when the tick stopped early."""

    checked: int = 0
    fired: int = 0
    notified: int = 0
    marked: int = 0
    skipped_no_email: int = 0
    skipped_opted_out: int = 0
    failed: int = 0
    aborted: bool = False


class AlertScheduler:
    """Runs ``run_once`` every ``interval`` seconds until stopped."""

    def __init__(
        self,
        alert_store: AlertStore,
        market_data: TopCoinsSource,
        user_store: UserStore,
        identity_provider: IdentityProvider,
        notification_sender: NotificationSender,
        *,
        interval: float = 60.0,
        snapshot_size: int = 250,
        snapshot_page: int = 1,
        tick_timeout: float | None = None,
    ) -> None:
        self._alerts = alert_store
        self._market_data = market_data
        self._users = user_store
        self._identity = identity_provider
        self._sender = notification_sender
        self._interval = interval
        self._snapshot_size = snapshot_size
        self._snapshot_page = snapshot_page
        self._tick_timeout = tick_timeout
        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the polling loop on the running event loop."""
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self.run_forever(self._stop_event)
        )
        logger.info("Alert scheduler started (interval=%ss)", self._interval)

    async def stop(self) -> None:
        """Signal the loop to stop and wait for the current tick to finish."""
        task, self._task = self._task, None
        if self._stop_event is not None:
            self._stop_event.set()
        if task is not None:
            await task
        logger.info("Alert scheduler stopped")

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Sleep one interval, tick, repeat until stop_event is set."""
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
            if stop_event.is_set():
                break
            try:
                if self._tick_timeout:
                    await asyncio.wait_for(self.run_once(), timeout=self._tick_timeout)
                else:
                    await self.run_once()
            except asyncio.TimeoutError:
                logger.error("Price alert check exceeded %ss deadline", self._tick_timeout)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Error checking price alerts")

    async def run_once(self) -> TickReport:
        """Perform one full evaluation pass."""
        logger.info("Checking price alerts...")
        report = TickReport()

        try:
            active_alerts = list(await self._alerts.get_active_alerts())
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to load active alerts")
            report.aborted = True
            return report

        report.checked = len(active_alerts)
        logger.info("Found %d active alerts to check", report.checked)
        if not active_alerts:
            return report

        prices = await self._price_snapshot()
        if prices is None:
            report.aborted = True
            return report

        for alert, trigger_price in evaluate(active_alerts, prices):
            report.fired += 1
            await self._process(alert, trigger_price, report)
        return report

    async def _price_snapshot(self) -> dict[str, float] | None:
        try:
            coins = await self._market_data.get_top_coins(
                self._snapshot_size, self._snapshot_page
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Failed to fetch market data: %s", exc)
            return None
        if not coins:
            logger.warning("No market data returned; skipping this check")
            return None
        return {
            coin.id: coin.current_price
            for coin in coins
            if coin.current_price is not None
        }

    async def _process(
        self, alert: PriceAlert, trigger_price: float, report: TickReport
    ) -> None:
        try:
            email = await self._resolve_email(alert.user_id)
            if not email:
                logger.error(
                    "No email found for user %s in user store or identity provider",
                    alert.user_id,
                )
                report.skipped_no_email += 1
                return

            try:
                if await self._sender.send_price_alert(email, alert, trigger_price):
                    report.notified += 1
                else:
                    report.skipped_opted_out += 1
            except Exception as exc:  # pylint: disable=broad-except
                # Marked triggered below even when sending fails.
                logger.error("Failed to send price alert for alert %s: %s", alert.id, exc)

            try:
                await self._alerts.mark_triggered(alert.id, trigger_price)
                report.marked += 1
                logger.info("Alert %s marked as triggered", alert.id)
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("Failed to mark alert %s as triggered: %s", alert.id, exc)
                report.failed += 1
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to process alert %s", alert.id)
            report.failed += 1

    async def _resolve_email(self, user_id: str) -> str | None:
        """Local user store first, then the identity provider (cached back locally)."""
        email: str | None = None
        try:
            email = await self._users.get_email(user_id)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Failed to read user %s from user store: %s", user_id, exc)
        if email:
            return email

        logger.info("Email not stored for user %s, asking identity provider", user_id)
        try:
            identity = await self._identity.get_user_by_id(user_id)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Identity lookup failed for user %s: %s", user_id, exc)
            return None
        if not identity.email:
            return None

        try:
            await self._users.save_email(user_id, identity.email)
            logger.info("Email saved to user store for user %s", user_id)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Failed to save email for user %s: %s", user_id, exc)
        return identity.email
