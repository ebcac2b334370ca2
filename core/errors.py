"""
Service Exceptions

Every failure the service turns into an HTTP response derives from
StockServiceError, so routes can map categories to status codes:

    QueryValidationError -> 400 (raised before any upstream call)
    UpstreamError        -> 500 (provider non-2xx, network failure, timeout, bad payload)
    ComputationError     -> 500 (unexpected, statistics are total)
"""

from typing import Optional


class StockServiceError(Exception):
    """Base class for all service errors."""

    error = "Unexpected error occurred"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class QueryValidationError(StockServiceError):
    """Malformed request parameters (wrong ticker count, non-numeric window)."""

    def __init__(self, error: str, details: str):
        super().__init__(details)
        self.error = error


class UpstreamError(StockServiceError):
    """
    The stock price provider could not deliver a price history.

    Attributes:
        status: HTTP status returned by the provider (None for network errors)
        ticker: Ticker being fetched, if any
    """

    error = "Failed to retrieve stock prices"

    def __init__(self, message: str, status: Optional[int] = None, ticker: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.ticker = ticker


class ComputationError(StockServiceError):
    """A statistics routine was asked for something it cannot compute."""

    error = "Failed to compute statistics"
