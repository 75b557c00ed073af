"""Shared utilities for market-data providers."""


def normalize_crypto_id(coin_id: str) -> str:
    """Normalize a CoinGecko ID (trimmed, lowercase)."""
    return coin_id.strip().lower()


def parse_id_list(raw: str | None) -> list[str]:
    """Split a comma-separated id list, dropping blanks and duplicates (order kept)."""
    seen: dict[str, None] = {}
    for part in (raw or "").split(","):
        part = part.strip()
        if part:
            seen.setdefault(normalize_crypto_id(part), None)
    return list(seen)
