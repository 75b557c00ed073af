"""Crypto market data with throttled upstream access and price alerts."""
