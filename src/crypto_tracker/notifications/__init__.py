"""Outbound user notifications."""
from crypto_tracker.notifications.email import EmailNotificationSender

__all__ = ["EmailNotificationSender"]
