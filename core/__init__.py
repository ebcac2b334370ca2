"""
Core Package

Contains the provider-agnostic building blocks of the service:
- config: Settings loaded from the environment
- logging: Application-wide logger
- errors: Exception hierarchy mapped to HTTP responses
- schemas: Pydantic models for price points and API responses
"""
