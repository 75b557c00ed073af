"""API routers.

Includes routes for:
- /crypto - Cryptocurrency market data and news
- /alerts - Price alerts of the calling user
- /portfolio - Holdings, live value and value history of the calling user
- /users - Notification preferences of the calling user
"""
from crypto_tracker.routers.alerts import router as alerts_router
from crypto_tracker.routers.crypto import router as crypto_router
from crypto_tracker.routers.portfolio import router as portfolio_router
from crypto_tracker.routers.users import router as users_router

__all__ = [
    "alerts_router",
    "crypto_router",
    "portfolio_router",
    "users_router",
]
