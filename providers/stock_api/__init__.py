"""
Stock Price Provider Connector

REST client for the third-party stock price API that supplies raw price
history. Only the response contract matters to the rest of the service:
a list of {price, lastUpdatedAt} records per ticker and window.
"""

from .api_client import StockAPIClient

__all__ = ["StockAPIClient"]
