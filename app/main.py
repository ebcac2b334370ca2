"""
FastAPI Application - Stock Statistics API

Thin analytics layer over a third-party stock price provider.

Features:
    - Average price over a look-back window
    - Correlation between two tickers
    - Correlation matrix across a ticker list
    - 60s in-memory cache of upstream price series

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 5000

Docs:
    - Swagger: http://localhost:5000/docs
    - ReDoc: http://localhost:5000/redoc
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings, validate_configuration
from core.errors import QueryValidationError, StockServiceError, UpstreamError
from core.logging import logger
from core.schemas import (
    CorrelationMatrixResponse,
    ErrorResponse,
    StockCorrelationResponse,
    StockListResponse,
    StockPriceResponse,
)
from providers.stock_api.api_client import StockAPIClient
from services.query_service import StockQueryService
from storage.price_cache import PriceCache


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the per-process client, cache and query service."""
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        client = StockAPIClient()
        await client.start()
        cache = PriceCache(ttl_seconds=settings.cache_ttl)
        app.state.query_service = StockQueryService(
            client, cache, correlation_formula=settings.correlation_formula
        )
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await client.close()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="Stock Statistics API",
    description=(
        "Average price and correlation statistics over a stock price provider.\n\n"
        "## REST Endpoints\n"
        "- `GET /api/stocks` - Tickers known to the provider\n"
        "- `GET /api/stocks/{ticker}?minutes=N` - Average price and price history\n"
        "- `GET /api/stockcorrelation?ticker=A&ticker=B&minutes=N` - Correlation of two tickers\n"
        "- `GET /api/correlationmatrix?ticker=A&ticker=B&ticker=C&minutes=N` - Pairwise correlations\n"
        "- `GET /health` - Health check\n\n"
        "Price series are cached per (ticker, minutes) for the configured TTL (60s by default)."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path} | Query: {request.url.query or '-'}")
    return await call_next(request)


# ============================================
# Dependencies & Helpers
# ============================================

def get_query_service(request: Request) -> StockQueryService:
    """Query service built in the lifespan (overridden in tests)."""
    return request.app.state.query_service


def parse_minutes(raw: Optional[str]) -> int:
    """
    Parse the ?minutes query parameter.

    Raises:
        QueryValidationError: If the value is not a positive integer
    """
    if raw is None or raw.strip() == "":
        return settings.default_minutes

    # ASCII digits only: int() would also take "1_0" and non-Latin numerals
    value = raw.strip()
    if not (value.isascii() and value.isdigit()):
        raise QueryValidationError(
            "Invalid minutes parameter",
            f"'minutes' must be a positive integer, got '{raw}'"
        )

    minutes = int(value)
    if minutes <= 0:
        raise QueryValidationError(
            "Invalid minutes parameter",
            f"'minutes' must be a positive integer, got '{raw}'"
        )
    return minutes


def error_response(status_code: int, error: str, details: str) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump())


_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid query parameters"},
    500: {"model": ErrorResponse, "description": "Upstream or unexpected failure"},
}


# ============================================
# System Endpoints
# ============================================

@app.get("/", tags=["System"])
async def root():
    """API information."""
    return {
        "name": "Stock Statistics API",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs"
    }


@app.get("/health", tags=["System"])
async def health_check(service: StockQueryService = Depends(get_query_service)):
    """Liveness plus cache size."""
    return {
        "status": "healthy",
        "cache_entries": len(service.cache),
        "cache_ttl": service.cache.ttl_seconds
    }


# ============================================
# Stock Endpoints
# ============================================

@app.get(
    "/api/stocks",
    response_model=StockListResponse,
    responses={500: _ERROR_RESPONSES[500]},
    tags=["Stocks"]
)
async def list_stocks(service: StockQueryService = Depends(get_query_service)):
    """
    Tickers known to the provider.

    Example:
        GET /api/stocks
    """
    try:
        return StockListResponse(stocks=await service.list_stocks())
    except UpstreamError as e:
        logger.error(f"Stock list error /api/stocks: {e}")
        return error_response(500, e.error, e.message)
    except Exception as e:
        logger.error(f"Unexpected error in /api/stocks: {e}")
        return error_response(500, "Unexpected error occurred", str(e))


@app.get(
    "/api/stocks/{ticker}",
    response_model=StockPriceResponse,
    responses=_ERROR_RESPONSES,
    tags=["Stocks"]
)
async def get_stock_average(
    ticker: str,
    minutes: Optional[str] = Query(default=None, description="Look-back window in minutes (default 50)"),
    service: StockQueryService = Depends(get_query_service)
):
    """
    Average price and price history of one ticker.

    Examples:
        GET /api/stocks/NVDA?minutes=50
    """
    try:
        window = parse_minutes(minutes)
    except QueryValidationError as e:
        logger.warning(f"Invalid request /api/stocks/{ticker}: {e.message}")
        return error_response(400, e.error, e.message)

    try:
        summary = await service.get_summary(ticker, window)
        logger.info(f"Average price for {ticker} ({window}m): {summary.average_price}")
        return StockPriceResponse(
            average_stock_price=summary.average_price,
            price_history=summary.price_history
        )
    except UpstreamError as e:
        logger.error(f"Price history error /api/stocks/{ticker} ({window}m): {e}")
        return error_response(500, e.error, e.message)
    except Exception as e:
        logger.error(f"Unexpected error in /api/stocks/{ticker} ({window}m): {e}")
        return error_response(500, "Unexpected error occurred", str(e))


@app.get(
    "/api/stockcorrelation",
    response_model=StockCorrelationResponse,
    responses=_ERROR_RESPONSES,
    tags=["Stocks"]
)
async def get_stock_correlation(
    ticker: List[str] = Query(default=[], description="Exactly two tickers"),
    minutes: Optional[str] = Query(default=None, description="Look-back window in minutes (default 50)"),
    service: StockQueryService = Depends(get_query_service)
):
    """
    Correlation between two tickers plus each ticker's average and history.

    Example:
        GET /api/stockcorrelation?ticker=NVDA&ticker=PYPL&minutes=50
    """
    if len(ticker) != 2:
        logger.warning(f"Invalid number of tickers provided: {ticker}")
        return error_response(
            400,
            "Exactly 2 tickers must be provided",
            'Provide two stock tickers in the "ticker" query parameter'
        )

    try:
        window = parse_minutes(minutes)
    except QueryValidationError as e:
        logger.warning(f"Invalid request /api/stockcorrelation: {e.message}")
        return error_response(400, e.error, e.message)

    ticker_a, ticker_b = ticker

    try:
        value, stocks = await service.get_correlation(ticker_a, ticker_b, window)
        logger.info(f"Correlation between {ticker_a} and {ticker_b} ({window}m): {value}")
        return StockCorrelationResponse(correlation=value, stocks=stocks)
    except StockServiceError as e:
        logger.error(f"Correlation error /api/stockcorrelation {ticker_a}/{ticker_b} ({window}m): {e}")
        return error_response(500, e.error, e.message)
    except Exception as e:
        logger.error(f"Unexpected error in /api/stockcorrelation {ticker_a}/{ticker_b}: {e}")
        return error_response(500, "Unexpected error occurred", str(e))


@app.get(
    "/api/correlationmatrix",
    response_model=CorrelationMatrixResponse,
    responses=_ERROR_RESPONSES,
    tags=["Stocks"]
)
async def get_correlation_matrix(
    ticker: List[str] = Query(default=[], description="Tickers (defaults to HEATMAP_TICKERS)"),
    minutes: Optional[str] = Query(default=None, description="Look-back window in minutes (default 50)"),
    service: StockQueryService = Depends(get_query_service)
):
    """
    Pairwise correlations across a ticker list.

    Tickers whose history cannot be fetched score 0 against every other ticker.

    Example:
        GET /api/correlationmatrix?ticker=NVDA&ticker=PYPL&ticker=AAPL&minutes=30
    """
    tickers: List[str] = []
    for t in ticker or settings.heatmap_tickers_list:
        if t not in tickers:
            tickers.append(t)

    if len(tickers) < 2:
        logger.warning(f"Invalid number of tickers for matrix: {ticker}")
        return error_response(
            400,
            "At least 2 distinct tickers must be provided",
            'Provide two or more stock tickers in the "ticker" query parameter'
        )

    try:
        window = parse_minutes(minutes)
    except QueryValidationError as e:
        logger.warning(f"Invalid request /api/correlationmatrix: {e.message}")
        return error_response(400, e.error, e.message)

    try:
        matrix = await service.get_correlation_matrix(tickers, window)
        return CorrelationMatrixResponse(minutes=window, tickers=tickers, matrix=matrix)
    except StockServiceError as e:
        logger.error(f"Correlation matrix error /api/correlationmatrix ({window}m): {e}")
        return error_response(500, e.error, e.message)
    except Exception as e:
        logger.error(f"Unexpected error in /api/correlationmatrix ({window}m): {e}")
        return error_response(500, "Unexpected error occurred", str(e))
