"""Errors raised by the alert, portfolio, user, notification and identity layers."""


class AlertNotFoundError(LookupError):
    """The alert does not exist or is not owned by the caller."""

    def __init__(self, alert_id: str) -> None:
        super().__init__(f"Alert '{alert_id}' not found")
        self.alert_id = alert_id


class HoldingNotFoundError(LookupError):
    """The holding does not exist or is not owned by the caller."""

    def __init__(self, holding_id: str) -> None:
        super().__init__(f"Holding '{holding_id}' not found")
        self.holding_id = holding_id


class HoldingExistsError(ValueError):
    """The caller already holds this coin; holdings are updated, not duplicated."""

    def __init__(self, coin_id: str) -> None:
        super().__init__(f"Holding for '{coin_id}' already exists")
        self.coin_id = coin_id


class BenchmarkNotFoundError(LookupError):
    """The caller has no portfolio benchmark."""


class NotificationError(RuntimeError):
    """A notification could not be delivered."""


class IdentityLookupError(RuntimeError):
    """The identity provider could not return the requested user."""
