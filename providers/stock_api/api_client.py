"""
Stock Price Provider REST Client

This module provides an async HTTP client for the third-party stock price API.
It handles:
- Bearer-token authentication and JSON content negotiation
- A fixed client-side timeout per request
- Error handling and logging
- Data normalization to our schemas

Provider Endpoints:
    GET {BASE}/stocks                      -> {"stocks": {"Apple Inc.": "AAPL", ...}}
    GET {BASE}/stocks/{ticker}?minutes=N   -> [{"price": 231.95, "lastUpdatedAt": "..."}, ...]

There is no retry logic: a single failed attempt raises UpstreamError.

Usage:
    async with StockAPIClient() as client:
        history = await client.get_price_history("AAPL", 50)
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from core.config import settings
from core.errors import UpstreamError
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import PricePoint


PROVIDER_NAME = "stock-api"


class StockAPIClient:
    """
    Async HTTP client for the stock price provider.

    Attributes:
        base_url: Provider base URL (no trailing slash)
        access_token: Static bearer token (empty = unauthenticated)
        timeout: Total request timeout in seconds
        session: aiohttp ClientSession for HTTP requests

    Example:
        >>> async with StockAPIClient() as client:
        ...     history = await client.get_price_history("NVDA", 30)
        ...     print(f"Fetched {len(history)} prices")

    Notes:
        - Use as an async context manager, or call start()/close() explicitly
        - Prices are returned in provider order
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.base_url = (base_url or settings.stock_api_base_url).rstrip("/")
        self.access_token = settings.stock_api_access_token if access_token is None else access_token
        self.timeout = timeout or settings.request_timeout
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Session Management
    # ============================================

    async def start(self) -> None:
        """Create the HTTP session if it does not exist yet."""
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self.logger.debug("StockAPIClient session created")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("StockAPIClient session closed")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    # ============================================
    # HTTP Request Handler
    # ============================================

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None, ticker: Optional[str] = None) -> Any:
        """
        Make a single GET request to the provider.

        Args:
            path: Endpoint path (e.g., "/stocks/AAPL")
            params: Optional query parameters
            ticker: Ticker for error context

        Returns:
            Decoded JSON response

        Raises:
            RuntimeError: If the session was not started
            UpstreamError: On non-2xx status, timeout, network failure or non-JSON body
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"
        log_api_request(PROVIDER_NAME, path, params)
        started = time.perf_counter()

        try:
            async with self.session.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as resp:
                log_api_response(PROVIDER_NAME, path, resp.status, time.perf_counter() - started)

                if 200 <= resp.status < 300:
                    try:
                        return await resp.json(content_type=None)
                    except ValueError as e:
                        raise UpstreamError(
                            f"Invalid JSON from {path}: {e}", status=resp.status, ticker=ticker
                        )

                text = await resp.text(errors="replace")
                self.logger.error(f"HTTP {resp.status} on {path}: {text}")
                raise UpstreamError(
                    f"Request failed with status code {resp.status}: {text}",
                    status=resp.status,
                    ticker=ticker
                )

        except asyncio.TimeoutError:
            self.logger.error(f"Timeout on {path} after {self.timeout}s")
            raise UpstreamError(f"Timeout of {self.timeout}s exceeded on {path}", ticker=ticker)

        except aiohttp.ClientError as e:
            self.logger.error(f"Request failed on {path}: {e}")
            raise UpstreamError(f"Request failed on {path}: {e}", ticker=ticker)

    # ============================================
    # API Methods
    # ============================================

    async def get_stocks(self) -> Dict[str, str]:
        """
        Fetch the list of tickers known to the provider.

        Returns:
            Mapping of company name to ticker

        Response Format:
            {"stocks": {"Apple Inc.": "AAPL", "Nvidia Corporation": "NVDA"}}
        """
        self.logger.info("Fetching stock list")
        data = await self._get("/stocks")

        if not isinstance(data, dict) or not isinstance(data.get("stocks"), dict):
            raise UpstreamError("Unexpected stock list payload")

        stocks = {str(name): str(ticker) for name, ticker in data["stocks"].items()}
        self.logger.info(f"Fetched {len(stocks)} stocks")
        return stocks

    async def get_price_history(self, ticker: str, minutes: int) -> List[PricePoint]:
        """
        Fetch price history for a ticker over the last `minutes` minutes.

        Args:
            ticker: Stock ticker (e.g., "AAPL")
            minutes: Look-back window in minutes

        Returns:
            List of PricePoint in provider order

        Raises:
            UpstreamError: If the request fails or the payload is not a list of price records

        Response Format:
            [
              {"price": 231.95296, "lastUpdatedAt": "2025-05-08T04:11:42.465706306Z"},
              {"price": 124.95156, "lastUpdatedAt": "2025-05-08T04:10:52.457269506Z"}
            ]
        """
        self.logger.info(f"Fetching price history: {ticker} (minutes={minutes})")

        data = await self._get(f"/stocks/{ticker}", {"minutes": minutes}, ticker=ticker)

        if not isinstance(data, list):
            raise UpstreamError(f"Unexpected price history payload for {ticker}", ticker=ticker)

        try:
            history = [PricePoint.model_validate(item) for item in data]
        except ValidationError as e:
            raise UpstreamError(f"Malformed price record for {ticker}: {e}", ticker=ticker)

        self.logger.info(f"Fetched {len(history)} prices for {ticker}")
        return history
