"""
Unit Tests for Stock API Client

These tests verify that the StockAPIClient:
- Requests the right paths and query parameters
- Normalizes provider responses to PricePoint
- Sends the bearer token and JSON content type
- Turns every failure into UpstreamError after a single attempt (no retries)

Run with:
    pytest tests/unit/test_stock_api_client.py -v
"""

import asyncio
from datetime import timezone

import aiohttp
import pytest

from core.errors import UpstreamError
from core.schemas import PricePoint
from providers.stock_api.api_client import StockAPIClient


# ============================================
# Fakes & Fixtures
# ============================================

class MockResponse:
    def __init__(self, status, json_data=None, text="", json_error=None):
        self.status = status
        self._json_data = json_data
        self._text = text
        self._json_error = json_error

    async def json(self, content_type="application/json"):
        if self._json_error:
            raise self._json_error
        return self._json_data

    async def text(self, errors="strict"):
        if isinstance(self._text, bytes):
            return self._text.decode("utf-8", errors=errors)
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass


class MockSession:
    """Replays a fixed response (or raises) and records each call."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.closed = False

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response

    async def close(self):
        self.closed = True


@pytest.fixture
def api_client():
    """Client with a fixed base URL and token; tests attach a MockSession"""
    return StockAPIClient(base_url="http://provider.test/api/", access_token="secret-token", timeout=5)


# ============================================
# Tests for Price History
# ============================================

class TestGetPriceHistory:
    """Tests for get_price_history method"""

    @pytest.mark.asyncio
    async def test_returns_list_of_price_points(self, api_client, monkeypatch):
        """Verify provider records are normalized to PricePoint"""
        mock_response = [
            {"price": 231.95296, "lastUpdatedAt": "2025-05-08T04:11:42.465706306Z"},
            {"price": 124.95156, "lastUpdatedAt": "2025-05-08T04:10:52.457269506Z"}
        ]

        async def mock_get(path, params=None, ticker=None):
            return mock_response

        monkeypatch.setattr(api_client, "_get", mock_get)

        result = await api_client.get_price_history("NVDA", 50)

        assert len(result) == 2
        assert all(isinstance(point, PricePoint) for point in result)
        assert result[0].price == 231.95296
        assert result[0].last_updated_at.microsecond == 465706
        assert result[0].last_updated_at.tzinfo == timezone.utc
        # Provider order is preserved, even when not chronological
        assert result[1].price == 124.95156

    @pytest.mark.asyncio
    async def test_requests_ticker_path_and_minutes(self, api_client, monkeypatch):
        called = {}

        async def mock_get(path, params=None, ticker=None):
            called.update(path=path, params=params, ticker=ticker)
            return []

        monkeypatch.setattr(api_client, "_get", mock_get)

        result = await api_client.get_price_history("AAPL", 30)

        assert result == []
        assert called == {"path": "/stocks/AAPL", "params": {"minutes": 30}, "ticker": "AAPL"}

    @pytest.mark.asyncio
    async def test_non_list_payload_raises(self, api_client, monkeypatch):
        async def mock_get(path, params=None, ticker=None):
            return {"stock": {"price": 1.0, "lastUpdatedAt": "2025-05-08T04:11:42Z"}}

        monkeypatch.setattr(api_client, "_get", mock_get)

        with pytest.raises(UpstreamError, match="Unexpected price history payload"):
            await api_client.get_price_history("AAPL", 50)

    @pytest.mark.asyncio
    async def test_malformed_record_raises(self, api_client, monkeypatch):
        async def mock_get(path, params=None, ticker=None):
            return [{"lastUpdatedAt": "2025-05-08T04:11:42Z"}]

        monkeypatch.setattr(api_client, "_get", mock_get)

        with pytest.raises(UpstreamError, match="Malformed price record") as exc_info:
            await api_client.get_price_history("AAPL", 50)

        assert exc_info.value.ticker == "AAPL"

    @pytest.mark.asyncio
    async def test_negative_price_passes_through(self, api_client, monkeypatch):
        async def mock_get(path, params=None, ticker=None):
            return [{"price": -1.5, "lastUpdatedAt": "2025-05-08T04:11:42Z"}]

        monkeypatch.setattr(api_client, "_get", mock_get)

        result = await api_client.get_price_history("AAPL", 50)

        assert [point.price for point in result] == [-1.5]

    @pytest.mark.asyncio
    async def test_non_finite_price_rejected(self, api_client, monkeypatch):
        async def mock_get(path, params=None, ticker=None):
            return [{"price": float("nan"), "lastUpdatedAt": "2025-05-08T04:11:42Z"}]

        monkeypatch.setattr(api_client, "_get", mock_get)

        with pytest.raises(UpstreamError, match="Malformed price record"):
            await api_client.get_price_history("AAPL", 50)


# ============================================
# Tests for Stock List
# ============================================

class TestGetStocks:
    """Tests for get_stocks method"""

    @pytest.mark.asyncio
    async def test_returns_name_to_ticker_mapping(self, api_client, monkeypatch):
        called = {}

        async def mock_get(path, params=None, ticker=None):
            called["path"] = path
            return {"stocks": {"Apple Inc.": "AAPL", "PayPal Holdings, Inc.": "PYPL"}}

        monkeypatch.setattr(api_client, "_get", mock_get)

        result = await api_client.get_stocks()

        assert called["path"] == "/stocks"
        assert result == {"Apple Inc.": "AAPL", "PayPal Holdings, Inc.": "PYPL"}

    @pytest.mark.asyncio
    async def test_unexpected_payload_raises(self, api_client, monkeypatch):
        async def mock_get(path, params=None, ticker=None):
            return ["AAPL"]

        monkeypatch.setattr(api_client, "_get", mock_get)

        with pytest.raises(UpstreamError, match="Unexpected stock list payload"):
            await api_client.get_stocks()


# ============================================
# Tests for the HTTP Request Handler
# ============================================

class TestRequestHandler:
    """Tests for _get: headers, timeout, and error mapping"""

    @pytest.mark.asyncio
    async def test_success_returns_json(self, api_client):
        api_client.session = MockSession(MockResponse(200, [{"price": 1.0}]))

        assert await api_client._get("/stocks/AAPL", {"minutes": 50}) == [{"price": 1.0}]

    @pytest.mark.asyncio
    async def test_builds_url_headers_and_timeout(self, api_client):
        session = MockSession(MockResponse(200, []))
        api_client.session = session

        await api_client._get("/stocks/AAPL", {"minutes": 50})

        call = session.calls[0]
        assert call["url"] == "http://provider.test/api/stocks/AAPL"
        assert call["params"] == {"minutes": 50}
        assert call["headers"]["Authorization"] == "Bearer secret-token"
        assert call["headers"]["Content-Type"] == "application/json"
        assert call["timeout"].total == 5

    @pytest.mark.asyncio
    async def test_no_authorization_header_without_token(self):
        client = StockAPIClient(base_url="http://provider.test", access_token="")
        session = MockSession(MockResponse(200, []))
        client.session = session

        await client._get("/stocks")

        assert "Authorization" not in session.calls[0]["headers"]

    @pytest.mark.asyncio
    async def test_non_2xx_raises_once_without_retry(self, api_client):
        session = MockSession(MockResponse(503, text="Service Unavailable"))
        api_client.session = session

        with pytest.raises(UpstreamError) as exc_info:
            await api_client._get("/stocks/AAPL", ticker="AAPL")

        assert exc_info.value.status == 503
        assert exc_info.value.ticker == "AAPL"
        assert "Service Unavailable" in exc_info.value.message
        assert len(session.calls) == 1

    @pytest.mark.asyncio
    async def test_undecodable_error_body_keeps_status(self, api_client):
        api_client.session = MockSession(MockResponse(502, text=b"Bad \xff\xfe Gateway"))

        with pytest.raises(UpstreamError, match="status code 502") as exc_info:
            await api_client._get("/stocks/AAPL", ticker="AAPL")

        assert exc_info.value.status == 502
        assert "Gateway" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unauthorized_carries_status(self, api_client):
        api_client.session = MockSession(MockResponse(401, text='{"message":"invalid token"}'))

        with pytest.raises(UpstreamError, match="status code 401") as exc_info:
            await api_client._get("/stocks")

        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_timeout_raises_upstream_error(self, api_client):
        session = MockSession(error=asyncio.TimeoutError())
        api_client.session = session

        with pytest.raises(UpstreamError, match="Timeout"):
            await api_client._get("/stocks/AAPL")

        assert len(session.calls) == 1

    @pytest.mark.asyncio
    async def test_network_error_raises_upstream_error(self, api_client):
        api_client.session = MockSession(error=aiohttp.ClientConnectionError("connection refused"))

        with pytest.raises(UpstreamError, match="connection refused") as exc_info:
            await api_client._get("/stocks/AAPL")

        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_invalid_json_raises_upstream_error(self, api_client):
        api_client.session = MockSession(MockResponse(200, json_error=ValueError("Expecting value")))

        with pytest.raises(UpstreamError, match="Invalid JSON"):
            await api_client._get("/stocks/AAPL")


# ============================================
# Tests for Session Management
# ============================================

class TestSessionManagement:
    """Tests for async context manager and start/close"""

    @pytest.mark.asyncio
    async def test_context_manager_creates_and_closes_session(self):
        client = StockAPIClient(base_url="http://provider.test")
        assert client.session is None

        async with client as c:
            assert isinstance(c.session, aiohttp.ClientSession)

        assert client.session is None

    @pytest.mark.asyncio
    async def test_get_raises_if_not_started(self):
        client = StockAPIClient(base_url="http://provider.test")

        with pytest.raises(RuntimeError, match="not initialized"):
            await client._get("/stocks")

    @pytest.mark.asyncio
    async def test_close_closes_session(self, api_client):
        session = MockSession()
        api_client.session = session

        await api_client.close()

        assert session.closed is True
        assert api_client.session is None
