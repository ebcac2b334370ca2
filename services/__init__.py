"""
Services Package

- statistics: pure price statistics (average, correlation)
- query_service: cache/provider/statistics orchestration used by the API routes
"""
