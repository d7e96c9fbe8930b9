"""
promscout configuration.

Pydantic-based settings read from environment variables and .env files.
"""

from promscout.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
