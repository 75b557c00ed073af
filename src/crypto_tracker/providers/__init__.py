"""Market-data providers.

All upstream market calls go through a single ThrottledCache:

- CoinGeckoGateway: prices, rankings, search, details and history via the
  CoinGecko API, plus latest news via CryptoCompare.

Example:
    cache = ThrottledCache(ttl=30.0, request_delay=1.0)
    gateway = CoinGeckoGateway(cache)
    top = await gateway.get_top_coins(limit=10)
    print(f"{top[0].name}: ${top[0].current_price}")
"""
from crypto_tracker.providers.core import (
    MarketDataError,
    NotFoundError,
    ProviderErrorMapper,
    RateLimitedError,
    ServiceUnavailableError,
    ThrottledCache,
)
from crypto_tracker.providers.crypto import CoinGeckoGateway, MarketDataGatewayABC

__all__ = [
    "CoinGeckoGateway",
    "MarketDataError",
    "MarketDataGatewayABC",
    "NotFoundError",
    "ProviderErrorMapper",
    "RateLimitedError",
    "ServiceUnavailableError",
    "ThrottledCache",
]
