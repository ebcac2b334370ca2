"""
In-Memory Price Cache

Maps a (ticker, minutes) key to the last price series fetched for it.
Entries expire lazily: `get` treats an entry as absent once its age reaches
the TTL, and the next `put` overwrites it. Nothing is evicted in the background,
so the number of entries grows with the number of distinct keys requested
(call `purge_expired()` to reclaim memory explicitly).

The cache is owned by a single asyncio event loop. `get` and `put` never await,
so each call is atomic with respect to other requests; two requests that miss
the same key at the same time will both fetch, and the later `put` wins.

Usage:
    cache = PriceCache(ttl_seconds=60)
    series = cache.get("AAPL", 50)
    if series is None:
        series = await client.get_price_history("AAPL", 50)
        cache.put("AAPL", 50, series)
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from core.logging import get_logger
from core.schemas import PricePoint


CacheKey = Tuple[str, int]


@dataclass(frozen=True)
class CacheEntry:
    series: List[PricePoint]
    fetched_at: float


class PriceCache:
    """
    Time-bounded cache of price series.

    Attributes:
        ttl_seconds: Age (seconds) at which an entry stops being served
        clock: Monotonic time source in seconds, injectable for tests

    Example:
        >>> cache = PriceCache(ttl_seconds=60)
        >>> cache.put("AAPL", 50, series)
        >>> cache.get("aapl", 50) is series
        True
    """

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        self.ttl_seconds = float(ttl_seconds)
        self.clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self.logger = get_logger(__name__)

    @staticmethod
    def _key(ticker: str, minutes: int) -> CacheKey:
        return ticker, int(minutes)

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.fetched_at < self.ttl_seconds

    # ============================================
    # Read / Write
    # ============================================

    def get(self, ticker: str, minutes: int) -> Optional[List[PricePoint]]:
        """
        Return the cached series for (ticker, minutes) if it is still fresh.

        Returns:
            The stored series, or None when missing or stale
        """
        entry = self._entries.get(self._key(ticker, minutes))
        if entry is None:
            self.logger.debug(f"Cache miss: {ticker} {minutes}m")
            return None

        if not self._is_fresh(entry, self.clock()):
            self.logger.debug(f"Cache stale: {ticker} {minutes}m")
            return None

        self.logger.debug(f"Cache hit: {ticker} {minutes}m ({len(entry.series)} points)")
        return entry.series

    def put(self, ticker: str, minutes: int, series: List[PricePoint]) -> None:
        """Store or overwrite the series for (ticker, minutes), stamped with the current time."""
        self._entries[self._key(ticker, minutes)] = CacheEntry(
            series=list(series),
            fetched_at=self.clock()
        )

    # ============================================
    # Maintenance
    # ============================================

    def purge_expired(self) -> int:
        """
        Drop every stale entry.

        Returns:
            Number of entries removed
        """
        now = self.clock()
        stale = [key for key, entry in self._entries.items() if not self._is_fresh(entry, now)]
        for key in stale:
            del self._entries[key]

        if stale:
            self.logger.info(f"Purged {len(stale)} expired cache entries")
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        ticker, minutes = key
        entry = self._entries.get(self._key(ticker, minutes))
        return entry is not None and self._is_fresh(entry, self.clock())
