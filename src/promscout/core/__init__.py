"""Core modules for promscout - centralized error definitions."""

from promscout.core.errors import (
    ConfigurationError,
    DiscoveryUnavailable,
    OptionalQueryFailure,
    PromscoutError,
    ProxyError,
    QueryExecutionError,
    SeriesParseError,
    error_response,
    handle_errors,
)

__all__ = [
    "PromscoutError",
    "ConfigurationError",
    "DiscoveryUnavailable",
    "QueryExecutionError",
    "OptionalQueryFailure",
    "ProxyError",
    "SeriesParseError",
    "error_response",
    "handle_errors",
]
