"""
Shared test fixtures and fakes.

FakeStockClient stands in for StockAPIClient: it serves canned price
histories, records every call, and raises configured errors per ticker.
FakeClock is an injectable time source for PriceCache.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

import pytest

from core.schemas import PricePoint
from services.query_service import StockQueryService
from storage.price_cache import PriceCache


def make_series(prices: Iterable[float], start: Optional[datetime] = None) -> List[PricePoint]:
    """Build a price series with one sample every 30 seconds."""
    start = start or datetime(2025, 5, 8, 4, 0, tzinfo=timezone.utc)
    return [
        PricePoint(price=price, last_updated_at=start + timedelta(seconds=30 * i))
        for i, price in enumerate(prices)
    ]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeStockClient:
    def __init__(
        self,
        histories: Optional[Dict[str, List[PricePoint]]] = None,
        failures: Optional[Dict[str, Exception]] = None,
        stocks: Optional[Dict[str, str]] = None
    ):
        self.histories = histories or {}
        self.failures = failures or {}
        self.stocks = stocks or {}
        self.calls: List[tuple] = []

    async def get_price_history(self, ticker: str, minutes: int) -> List[PricePoint]:
        self.calls.append((ticker, minutes))
        if ticker in self.failures:
            raise self.failures[ticker]
        return list(self.histories.get(ticker, []))

    async def get_stocks(self) -> Dict[str, str]:
        self.calls.append(("/stocks",))
        return dict(self.stocks)

    def calls_for(self, ticker: str) -> int:
        return sum(1 for call in self.calls if call[0] == ticker)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> PriceCache:
    return PriceCache(ttl_seconds=60, clock=clock)


@pytest.fixture
def fake_client() -> FakeStockClient:
    return FakeStockClient(
        histories={
            "AAPL": make_series([1, 2, 3, 4, 5]),
            "NVDA": make_series([2, 4, 6, 8, 10]),
            "PYPL": make_series([10, 8, 6, 4, 2]),
            "FLAT": make_series([7, 7, 7, 7, 7]),
        },
        stocks={"Apple Inc.": "AAPL", "Nvidia Corporation": "NVDA"}
    )


@pytest.fixture
def service(fake_client, cache) -> StockQueryService:
    return StockQueryService(fake_client, cache)
