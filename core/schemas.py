"""
Price and Response Schemas

This module defines Pydantic models for stock price data and API responses.

Field names are snake_case in Python and camelCase on the wire, so both the
upstream provider's payloads ({"price", "lastUpdatedAt"}) and our JSON responses
({"averageStockPrice", "priceHistory"}) keep the format existing clients expect.

Models:
    - PricePoint: One price sample from the provider (immutable)
    - StockSummary: Average price plus the history it was computed from
    - StockPriceResponse: Body of GET /api/stocks/{ticker}
    - StockCorrelationResponse: Body of GET /api/stockcorrelation
    - CorrelationMatrixResponse: Body of GET /api/correlationmatrix
    - StockListResponse: Body of GET /api/stocks
    - ErrorResponse: Body of every 4xx/5xx response
"""

from datetime import datetime
from typing import Dict, List
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.utils.time import parse_timestamp


# ============================================
# Price Data
# ============================================

class PricePoint(BaseModel):
    """
    Single price sample for a ticker.

    Attributes:
        price: Trade price at the sample time
        last_updated_at: Sample time in UTC (wire name: lastUpdatedAt)

    Example:
        >>> PricePoint.model_validate({"price": 231.95, "lastUpdatedAt": "2025-05-08T04:11:42.465706306Z"})
        PricePoint(price=231.95, last_updated_at=datetime.datetime(2025, 5, 8, 4, 11, 42, 465706, tzinfo=...))

    Notes:
        - Instances are frozen: a fetched series is shared between cache and responses
        - lastUpdatedAt accepts ISO-8601 strings or epoch seconds/milliseconds
    """

    price: float = Field(
        ...,
        allow_inf_nan=False,
        description="Stock price"
    )

    last_updated_at: datetime = Field(
        ...,
        alias="lastUpdatedAt",
        description="Time of the price sample in UTC"
    )

    @field_validator("last_updated_at", mode="before")
    @classmethod
    def normalize_timestamp(cls, v):
        """Accept ISO strings of any precision and epoch numbers"""
        return parse_timestamp(v)

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "price": 231.95296,
                "lastUpdatedAt": "2025-05-08T04:11:42.465706Z"
            }
        }
    )


class StockSummary(BaseModel):
    """Average price of one ticker together with the series it was computed from."""

    average_price: float = Field(..., alias="averagePrice")
    price_history: List[PricePoint] = Field(default_factory=list, alias="priceHistory")

    model_config = ConfigDict(populate_by_name=True)


# ============================================
# API Responses
# ============================================

class StockPriceResponse(BaseModel):
    average_stock_price: float = Field(..., alias="averageStockPrice")
    price_history: List[PricePoint] = Field(default_factory=list, alias="priceHistory")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "averageStockPrice": 453.56,
                "priceHistory": [
                    {"price": 231.95, "lastUpdatedAt": "2025-05-08T04:11:42.465706Z"},
                    {"price": 675.17, "lastUpdatedAt": "2025-05-08T04:12:12.465706Z"}
                ]
            }
        }
    )


class StockCorrelationResponse(BaseModel):
    """
    Correlation between two tickers.

    `stocks` is keyed by the tickers exactly as requested, in request order.
    """

    # Not bounded: the legacy formula can leave [-1, 1] for near-flat series
    correlation: float = Field(
        ...,
        description="Correlation rounded to 2 decimals; 0 when undetermined"
    )
    stocks: Dict[str, StockSummary]


class CorrelationMatrixResponse(BaseModel):
    minutes: int
    tickers: List[str]
    matrix: Dict[str, Dict[str, float]]


class StockListResponse(BaseModel):
    stocks: Dict[str, str] = Field(
        default_factory=dict,
        description="Company name to ticker mapping as reported by the provider"
    )


class ErrorResponse(BaseModel):
    error: str
    details: str
