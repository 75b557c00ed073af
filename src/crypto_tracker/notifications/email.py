"""Price-alert emails over SMTP."""
import asyncio
import html
import logging
import smtplib
import ssl
from collections.abc import Callable
from datetime import datetime, timezone
from email.message import EmailMessage

from crypto_tracker.db.models import AlertCondition, PriceAlert
from crypto_tracker.exceptions import NotificationError
from crypto_tracker.services.protocols import UserStore

logger = logging.getLogger(__name__)


def _strip_zeros(text: str, keep: int = 0) -> str:
    """Drop trailing fractional zeros, keeping at least ``keep`` decimals."""
    if "." not in text:
        return text
    whole, frac = text.split(".", 1)
    frac = frac.rstrip("0")
    if len(frac) < keep:
        frac = frac.ljust(keep, "0")
    return f"{whole}.{frac}" if frac else whole


def format_target_price(price: float) -> str:
    """Thousands separators, precision scaled to magnitude, no trailing zeros."""
    magnitude = abs(price)
    if magnitude < 0.01:
        places = 8
    elif magnitude < 1:
        places = 6
    elif magnitude < 100:
        places = 4
    else:
        places = 2
    return _strip_zeros(f"{price:,.{places}f}")


def format_current_price(price: float) -> str:
    """Between 2 and 8 decimals, thousands separators."""
    return _strip_zeros(f"{price:,.8f}", keep=2)


def _display_name(alert: PriceAlert) -> str:
    name = alert.coin_name or alert.coin_id
    return name[:1].upper() + name[1:]


class EmailNotificationSender:
    """Sends price-alert emails, honouring each user's notification preference."""

    def __init__(
        self,
        user_store: UserStore,
        *,
        smtp_host: str | None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        sender: str | None = None,
        frontend_url: str = "",
        timeout: float = 10.0,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ) -> None:
        self._users = user_store
        self._host = smtp_host
        self._port = smtp_port
        self._user = smtp_user
        self._password = smtp_password
        self._sender = sender or smtp_user
        self._frontend_url = frontend_url
        self._timeout = timeout
        self._smtp_factory = smtp_factory

    async def send_price_alert(
        self, email: str, alert: PriceAlert, current_price: float
    ) -> bool:
        """Email the alert owner.

        Returns:
            True when the email went out, False when the owner opted out.

        Raises:
            NotificationError: Missing input, unreadable preference, or SMTP failure.
        """
        if not email:
            raise NotificationError("User email is required")
        if alert is None:
            raise NotificationError("Alert data is required")
        if current_price is None:
            raise NotificationError("Current price is required")

        try:
            enabled = await self._users.is_email_notification_enabled(alert.user_id)
        except Exception as exc:
            raise NotificationError(
                f"Failed to check email notification settings: {exc}"
            ) from exc
        if not enabled:
            logger.info(
                "Email notification skipped for user %s - notifications disabled",
                alert.user_id,
            )
            return False

        message = self.build_message(email, alert, current_price)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError, NotificationError) as exc:
            logger.error(
                "Failed to send price alert email to %s for %s: %s", email, alert.coin_id, exc
            )
            raise NotificationError(f"Failed to send price alert email: {exc}") from exc
        logger.info("Price alert email sent to %s for %s", email, alert.coin_id)
        return True

    def build_message(
        self, email: str, alert: PriceAlert, current_price: float
    ) -> EmailMessage:
        name = _display_name(alert)
        target = format_target_price(float(alert.target_price))
        current = format_current_price(float(current_price))
        direction = "risen above" if alert.condition == AlertCondition.ABOVE else "fallen below"

        message = EmailMessage()
        message["Subject"] = f"Price alert: {name}"
        message["From"] = self._sender or ""
        message["To"] = email
        message.set_content(
            f"{name} has {direction} your target.\n\n"
            f"Current price: ${current}\n"
            f"Target price: ${target}\n"
            f"Condition: {alert.condition.value} ${target}\n\n"
            "This alert has been switched off. Create a new one if you need it.\n"
            f"{self._frontend_url}\n"
        )
        message.add_alternative(self._render_html(name, direction, current, target), subtype="html")
        return message

    def _render_html(self, name: str, direction: str, current: str, target: str) -> str:
        safe_name = html.escape(name)
        year = datetime.now(timezone.utc).year
        link = html.escape(self._frontend_url, quote=True)
        return f"""\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h2 style="color: #1f2937;">{safe_name} has {direction} your target</h2>
  <table style="width: 100%; border-collapse: collapse;">
    <tr><td>Coin</td><td style="text-align: right;"><b>{safe_name}</b></td></tr>
    <tr><td>Current price</td><td style="text-align: right; color: #059669;"><b>${current}</b></td></tr>
    <tr><td>Target price</td><td style="text-align: right;"><b>${target}</b></td></tr>
  </table>
  <p style="color: #1e40af; font-size: 14px;">
    This alert has been switched off. You can create a new one at any time.
  </p>
  <p style="text-align: center;"><a href="{link}">Open Crypto Tracker</a></p>
  <p style="color: #6b7280; font-size: 12px; text-align: center;">&copy; {year} Crypto Tracker</p>
</div>
"""

    def _deliver(self, message: EmailMessage) -> None:
        if not self._host:
            raise NotificationError("SMTP host is not configured")
        with self._smtp_factory(self._host, self._port, timeout=self._timeout) as smtp:
            smtp.starttls(context=ssl.create_default_context())
            if self._user and self._password:
                smtp.login(self._user, self._password)
            smtp.send_message(message)
