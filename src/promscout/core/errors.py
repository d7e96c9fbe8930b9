"""
Unified error handling for promscout.

This module provides the error taxonomy shared by discovery, proxying,
parsing and the metrics handlers, and the helpers that turn those errors
into HTTP-shaped responses for the delivery layer.

Status codes:
- 400: Configuration error (missing/invalid cluster coordinates)
- 404: Metrics backend not available (no verified target)
- 500: Query execution error (required query failed)
- 502: Proxy error (control-plane proxy call failed)
"""

from __future__ import annotations

import functools
from http import HTTPStatus
from typing import Any, Awaitable, Callable, TypeVar

import structlog
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class PromscoutError(Exception):
    """Base exception for promscout errors with status code support."""

    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(PromscoutError):
    """Raised for missing or invalid cluster coordinates."""

    status_code = HTTPStatus.BAD_REQUEST


class DiscoveryUnavailable(PromscoutError):
    """Raised when no verified metrics backend could be found."""

    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, message: str = "prometheus not available", details: dict[str, Any] | None = None):
        super().__init__(message, details)


class QueryExecutionError(PromscoutError):
    """Raised when a required query fails after a target was found."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class OptionalQueryFailure(PromscoutError):
    """Raised when a non-essential sub-query fails. Always swallowed by handlers."""


class ProxyError(PromscoutError):
    """Raised when a call through the control-plane proxy fails."""

    status_code = HTTPStatus.BAD_GATEWAY


class SeriesParseError(PromscoutError):
    """Raised when a telemetry response is malformed or reports a non-success status."""


def error_response(error: PromscoutError) -> JSONResponse:
    """Convert an error into the JSON body the delivery layer renders."""
    body: dict[str, Any] = {"error": error.message}
    if error.details:
        body["details"] = error.details
    return JSONResponse(status_code=int(error.status_code), content=body)


F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def handle_errors(*, log_errors: bool = True) -> Callable[[F], F]:
    """
    Decorator for API route handlers that provides unified error handling.

    PromscoutError subclasses become a JSON error body with the error's
    status code. Anything else propagates to the framework.

    Usage:
        @router.get("/thing")
        @handle_errors()
        async def get_thing() -> dict:
            ...
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except PromscoutError as e:
                if log_errors:
                    logger.error(
                        "request_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        status_code=int(e.status_code),
                        **e.details,
                    )
                return error_response(e)

        return wrapper  # type: ignore[return-value]

    return decorator
