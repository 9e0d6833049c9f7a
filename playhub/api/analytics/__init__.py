"""Analytics module."""
