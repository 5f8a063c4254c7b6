"""Custom exception types for the Azure DevOps environment reporter."""

from __future__ import annotations

from typing import Optional


class EnvReportError(Exception):
    """Base exception for all recoverable environment reporter errors."""


class ConfigurationError(EnvReportError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(EnvReportError):
    """Raised when upstream credentials are unavailable or rejected (401/403)."""


class ApiError(EnvReportError):
    """Raised when an upstream API request fails or returns an unexpected response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(ApiError):
    """Raised when an upstream resource does not exist (HTTP 404)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


class DataValidationError(EnvReportError):
    """Raised when API payloads do not meet expected constraints."""


class QueryValidationError(EnvReportError):
    """Raised when paging or sort parameters are outside their accepted range."""
