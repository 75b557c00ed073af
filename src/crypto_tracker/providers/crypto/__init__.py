"""Cryptocurrency market-data gateways."""
from crypto_tracker.providers.crypto.coingecko.coin_gecko_gateway import CoinGeckoGateway
from crypto_tracker.providers.crypto.market_data_gateway_abc import MarketDataGatewayABC

__all__ = ["CoinGeckoGateway", "MarketDataGatewayABC"]
