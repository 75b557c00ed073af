"""Request parameter models for CoinGecko endpoints."""
from pydantic import BaseModel


class CoinGeckoSimplePriceParams(BaseModel):
    """Params for /simple/price (get_prices). Merge with 'ids' at call site."""

    vs_currencies: str = "usd"
    include_market_cap: str = "true"
    include_24hr_change: str = "true"


class CoinGeckoMarketsParams(BaseModel):
    """Params for /coins/markets (top coins, basic info, single-coin market row)."""

    vs_currency: str = "usd"
    order: str = "market_cap_desc"
    per_page: int = 10
    page: int = 1
    sparkline: str = "false"
    price_change_percentage: str = "1h,24h,7d"


class CoinGeckoDetailsParams(BaseModel):
    """Params for /coins/{id}."""

    localization: str = "false"
    tickers: str = "true"
    market_data: str = "true"
    community_data: str = "false"
    developer_data: str = "false"


class CoinGeckoChartParams(BaseModel):
    """Params for /coins/{id}/market_chart."""

    vs_currency: str = "usd"
    days: int = 7


class NewsParams(BaseModel):
    """Params for the news feed."""

    lang: str = "EN"
