"""Database package: models, sessions and stores."""
from crypto_tracker.db.models import (
    AlertCondition,
    PortfolioBenchmark,
    PortfolioHolding,
    PriceAlert,
    UserProfile,
)

__all__ = [
    "AlertCondition",
    "PortfolioBenchmark",
    "PortfolioHolding",
    "PriceAlert",
    "UserProfile",
]
