"""Tests for price-alert email rendering and delivery."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_alert
from crypto_tracker.db.models import AlertCondition
from crypto_tracker.exceptions import NotificationError
from crypto_tracker.notifications.email import (
    EmailNotificationSender,
    format_current_price,
    format_target_price,
)


class TestPriceFormatting:
    @pytest.mark.parametrize(
        "price,expected",
        [
            (65000.0, "65,000"),
            (65000.129, "65,000.13"),
            (12.34567, "12.3457"),
            (0.5, "0.5"),
            (0.1234567, "0.123457"),
            (0.00001234, "0.00001234"),
        ],
    )
    def test_target_price(self, price, expected):
        assert format_target_price(price) == expected

    @pytest.mark.parametrize(
        "price,expected",
        [
            (65000.0, "65,000.00"),
            (1.5, "1.50"),
            (0.00001234, "0.00001234"),
            (3.123456789, "3.12345679"),
        ],
    )
    def test_current_price(self, price, expected):
        assert format_current_price(price) == expected


def build_sender(enabled: bool = True, smtp=None):
    users = AsyncMock()
    users.is_email_notification_enabled.return_value = enabled
    smtp = smtp or MagicMock()
    factory = MagicMock()
    factory.return_value.__enter__.return_value = smtp
    sender = EmailNotificationSender(
        users,
        smtp_host="smtp.test",
        smtp_user="mailer",
        smtp_password="secret",
        sender="alerts@example.com",
        frontend_url="https://app.example.com",
        smtp_factory=factory,
    )
    return sender, users, factory, smtp


class TestEmailNotificationSender:
    def test_message_content(self):
        sender, *_ = build_sender()
        alert = make_alert(coin_id="bitcoin", target_price="65000")

        message = sender.build_message("u1@example.com", alert, 65100.5)

        assert message["Subject"] == "Price alert: Bitcoin"
        assert message["To"] == "u1@example.com"
        text = message.get_body(preferencelist=("plain",)).get_content()
        assert "risen above" in text
        assert "$65,100.50" in text
        assert "$65,000" in text
        html = message.get_body(preferencelist=("html",)).get_content()
        assert "https://app.example.com" in html

    def test_below_wording(self):
        sender, *_ = build_sender()
        alert = make_alert(condition=AlertCondition.BELOW, target_price="1")

        message = sender.build_message("u1@example.com", alert, 0.99)

        assert "fallen below" in message.get_body(preferencelist=("plain",)).get_content()

    async def test_sends_over_smtp(self):
        sender, users, factory, smtp = build_sender()

        assert await sender.send_price_alert("u1@example.com", make_alert(), 65100.5) is True

        users.is_email_notification_enabled.assert_awaited_once_with("u1")
        factory.assert_called_once_with("smtp.test", 587, timeout=10.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("mailer", "secret")
        smtp.send_message.assert_called_once()

    async def test_opted_out_user_is_skipped(self):
        sender, _, factory, _ = build_sender(enabled=False)

        assert await sender.send_price_alert("u1@example.com", make_alert(), 65100.5) is False

        factory.assert_not_called()

    async def test_missing_email_rejected(self):
        sender, *_ = build_sender()

        with pytest.raises(NotificationError):
            await sender.send_price_alert("", make_alert(), 1.0)

    async def test_smtp_failure_wrapped(self):
        smtp = MagicMock()
        smtp.send_message.side_effect = OSError("connection reset")
        sender, *_ = build_sender(smtp=smtp)

        with pytest.raises(NotificationError):
            await sender.send_price_alert("u1@example.com", make_alert(), 1.0)

    async def test_unconfigured_host_raises(self):
        users = AsyncMock()
        users.is_email_notification_enabled.return_value = True
        sender = EmailNotificationSender(users, smtp_host=None)

        with pytest.raises(NotificationError):
            await sender.send_price_alert("u1@example.com", make_alert(), 1.0)
