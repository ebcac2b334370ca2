"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Accepts the legacy variable names of the stock test server (TEST_SERVER_BASE_URL, ACCESS_TOKEN)
- Converts comma-separated strings to lists (CORS origins, heatmap tickers)
- Handles optional settings with sensible defaults

Usage:
    from core.config import settings

    print(settings.stock_api_base_url)
    print(settings.cache_ttl)
"""

from typing import List
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


CORRELATION_FORMULAS = ("legacy", "pearson")


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        stock_api_base_url: Base URL of the upstream stock price provider
        stock_api_access_token: Static bearer token sent to the provider
        client_id: Provider client id (kept for parity with the provider registration)
        client_secret: Provider client secret
        default_minutes: Look-back window used when a request omits ?minutes
        cache_ttl: Seconds a fetched price series stays reusable
        request_timeout: Total timeout for one upstream request in seconds
        correlation_formula: "legacy" (asymmetric, compatible) or "pearson" (textbook)
        heatmap_tickers: Comma-separated tickers used by the correlation matrix
        cors_origins: Comma-separated list of allowed CORS origins
        app_host: Host address for FastAPI server
        app_port: Port number for FastAPI server
        environment: Current environment (development, production)
        debug: Enable debug mode with verbose logging
        log_level: Logging level
    """

    # ============================================
    # Stock Price Provider
    # ============================================

    stock_api_base_url: str = Field(
        default="http://localhost:9000/evaluation-service",
        validation_alias=AliasChoices("stock_api_base_url", "test_server_base_url"),
        description="Base URL of the stock price provider"
    )

    stock_api_access_token: str = Field(
        default="",
        validation_alias=AliasChoices("stock_api_access_token", "access_token"),
        description="Static bearer token for the stock price provider"
    )

    client_id: str = Field(
        default="",
        description="Provider client id (optional)"
    )

    client_secret: str = Field(
        default="",
        description="Provider client secret (optional)"
    )

    request_timeout: int = Field(
        default=10,
        description="Upstream HTTP request timeout in seconds"
    )

    # ============================================
    # Statistics & Caching
    # ============================================

    default_minutes: int = Field(
        default=50,
        description="Default look-back window in minutes"
    )

    cache_ttl: int = Field(
        default=60,
        description="Price cache TTL in seconds"
    )

    correlation_formula: str = Field(
        default="legacy",
        description="Correlation formula: legacy or pearson"
    )

    heatmap_tickers: str = Field(
        default="NVDA,PYPL,AAPL,MSFT,GOOGL,AMZN,META,TSLA,AMD,V",
        description="Comma-separated tickers for the correlation matrix"
    )

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="0.0.0.0",
        description="FastAPI server host address"
    )

    app_port: int = Field(
        default=5000,
        description="FastAPI server port"
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    # ============================================
    # Computed Properties
    # ============================================

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Convert comma-separated CORS origins string to a list.

        Example:
            >>> settings.cors_origins_list
            ['http://localhost:3000', 'http://localhost:5173']
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def heatmap_tickers_list(self) -> List[str]:
        """
        Convert comma-separated heatmap tickers to an upper-case list without duplicates.

        Example:
            >>> settings.heatmap_tickers_list
            ['NVDA', 'PYPL', 'AAPL', ...]
        """
        tickers: List[str] = []
        for raw in self.heatmap_tickers.split(","):
            ticker = raw.strip().upper()
            if ticker and ticker not in tickers:
                tickers.append(ticker)
        return tickers


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration(config: Settings = None) -> None:
    """
    Validate critical configuration settings on application startup.

    Args:
        config: Settings to validate (defaults to the global instance)

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # logging.py imports config.py, so we can't import at module level
    from core.logging import logger

    config = config or settings

    if not config.stock_api_base_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid STOCK_API_BASE_URL: '{config.stock_api_base_url}'. "
            f"Must start with http:// or https://"
        )

    if config.request_timeout <= 0:
        raise ValueError(f"REQUEST_TIMEOUT must be positive, got {config.request_timeout}")

    if config.cache_ttl <= 0:
        raise ValueError(f"CACHE_TTL must be positive, got {config.cache_ttl}")

    if config.default_minutes <= 0:
        raise ValueError(f"DEFAULT_MINUTES must be positive, got {config.default_minutes}")

    if config.correlation_formula.lower() not in CORRELATION_FORMULAS:
        raise ValueError(
            f"Invalid CORRELATION_FORMULA: '{config.correlation_formula}'. "
            f"Must be one of: {', '.join(CORRELATION_FORMULAS)}"
        )

    if not (1 <= config.app_port <= 65535):
        raise ValueError(f"Invalid port number: {config.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    if not config.stock_api_access_token:
        logger.warning("STOCK_API_ACCESS_TOKEN is empty, upstream requests are unauthenticated")

    logger.info("Configuration validated successfully")
    logger.info(f"Stock API: {config.stock_api_base_url}")
    logger.info(f"Cache TTL: {config.cache_ttl}s | Default window: {config.default_minutes}m")
    logger.info(f"Correlation formula: {config.correlation_formula.lower()}")
    logger.info(f"Server: {config.app_host}:{config.app_port}")
    logger.info(f"Log level: {config.log_level.upper()}")
