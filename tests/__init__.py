"""
Test Suite

Structure:
- tests/unit/: Tests for individual components (statistics, cache, client, service, routes)
- tests/conftest.py: Shared fakes (FakeStockClient, FakeClock) and fixtures

Uses pytest with pytest-asyncio for testing async functionality.
"""
