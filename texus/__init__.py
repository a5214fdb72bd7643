"""Collect OKX spot tickers and candles into Redis, with helpers for the v5 protocol."""

__version__ = "0.1.0"