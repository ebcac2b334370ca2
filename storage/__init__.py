"""
Storage Package

Handles caching of upstream price data.

Current implementation:
- In-memory, time-bounded cache of price series keyed by (ticker, minutes)
"""

from storage.price_cache import CacheEntry, PriceCache

__all__ = ["CacheEntry", "PriceCache"]
