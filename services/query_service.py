"""
Stock Query Service

Orchestrates cache lookup -> upstream fetch -> statistics for the API layer.

The service receives its collaborators explicitly (client, cache, formula) so
the FastAPI app can build one per process in its lifespan and tests can build
one around fakes.
"""

import asyncio
from itertools import combinations
from typing import Dict, List, Tuple

from core.errors import UpstreamError
from core.logging import get_logger
from core.schemas import PricePoint, StockSummary
from providers.stock_api.api_client import StockAPIClient
from services.statistics import average, compute_correlation
from storage.price_cache import PriceCache


class StockQueryService:
    """
    Read-side facade over the stock price provider.

    Attributes:
        client: Upstream client (anything with async get_price_history/get_stocks)
        cache: PriceCache shared by all requests of the process
        correlation_formula: "legacy" or "pearson"

    Example:
        >>> service = StockQueryService(client, PriceCache(ttl_seconds=60))
        >>> await service.get_average("AAPL", 50)
        453.56
    """

    def __init__(self, client: StockAPIClient, cache: PriceCache, correlation_formula: str = "legacy"):
        self.client = client
        self.cache = cache
        self.correlation_formula = correlation_formula
        self.logger = get_logger(__name__)

    # ============================================
    # Price History
    # ============================================

    async def get_price_history(self, ticker: str, minutes: int) -> List[PricePoint]:
        """
        Return the price series for (ticker, minutes), from cache when fresh.

        Raises:
            UpstreamError: If the series is not cached and the fetch fails.
                The cache is left untouched in that case.
        """
        cached = self.cache.get(ticker, minutes)
        if cached is not None:
            return cached

        series = await self.client.get_price_history(ticker, minutes)
        self.cache.put(ticker, minutes, series)
        return series

    async def list_stocks(self) -> Dict[str, str]:
        """Provider ticker list (not cached)."""
        return await self.client.get_stocks()

    # ============================================
    # Statistics
    # ============================================

    async def get_average(self, ticker: str, minutes: int) -> float:
        return average(await self.get_price_history(ticker, minutes))

    async def get_summary(self, ticker: str, minutes: int) -> StockSummary:
        """Average price and the series behind it."""
        series = await self.get_price_history(ticker, minutes)
        return StockSummary(average_price=average(series), price_history=series)

    async def get_correlation(
        self,
        ticker_a: str,
        ticker_b: str,
        minutes: int
    ) -> Tuple[float, Dict[str, StockSummary]]:
        """
        Correlate two tickers over the same window.

        Both histories are fetched concurrently. If either fetch fails the whole
        call fails; the other fetch may still complete and populate the cache.

        Returns:
            (correlation, {ticker_a: summary_a, ticker_b: summary_b})

        Raises:
            UpstreamError: If either history cannot be fetched
        """
        series_a, series_b = await asyncio.gather(
            self.get_price_history(ticker_a, minutes),
            self.get_price_history(ticker_b, minutes)
        )

        value = compute_correlation(series_a, series_b, self.correlation_formula)

        stocks = {
            ticker_a: StockSummary(average_price=average(series_a), price_history=series_a),
            ticker_b: StockSummary(average_price=average(series_b), price_history=series_b),
        }
        return value, stocks

    async def get_correlation_matrix(self, tickers: List[str], minutes: int) -> Dict[str, Dict[str, float]]:
        """
        Pairwise correlations for every unordered pair of `tickers`.

        Each ticker's history is fetched once, concurrently. A pair involving a
        ticker whose history cannot be fetched scores 0.0 instead of failing the
        matrix. The matrix is symmetric with 1.0 on the diagonal.
        """
        results = await asyncio.gather(
            *(self.get_price_history(t, minutes) for t in tickers),
            return_exceptions=True
        )

        histories: Dict[str, List[PricePoint]] = {}
        for ticker, result in zip(tickers, results):
            if isinstance(result, UpstreamError):
                self.logger.error(f"Price history error for {ticker} ({minutes}m): {result}")
            elif isinstance(result, BaseException):
                raise result
            else:
                histories[ticker] = result

        matrix: Dict[str, Dict[str, float]] = {t: {t: 1.0} for t in tickers}
        for a, b in combinations(tickers, 2):
            if a in histories and b in histories:
                value = compute_correlation(histories[a], histories[b], self.correlation_formula)
            else:
                value = 0.0
            matrix[a][b] = value
            matrix[b][a] = value
        return matrix
