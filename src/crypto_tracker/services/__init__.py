"""Service layer: market-data access, alert and portfolio CRUD, the alert scheduler."""
from crypto_tracker.services.alert_evaluator import FiringAlert, evaluate
from crypto_tracker.services.alert_scheduler import AlertScheduler, TickReport
from crypto_tracker.services.alerts import AlertsService, UsersService
from crypto_tracker.services.crypto import CryptoService
from crypto_tracker.services.portfolio import PortfolioService

__all__ = [
    "AlertScheduler",
    "AlertsService",
    "CryptoService",
    "FiringAlert",
    "PortfolioService",
    "TickReport",
    "UsersService",
    "evaluate",
]
