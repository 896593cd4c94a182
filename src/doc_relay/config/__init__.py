"""Configuration management for doc_relay.

Centralized configuration loaded from environment variables with validation
using Pydantic BaseSettings.

Usage:
    >>> from doc_relay.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.LOG_LEVEL)
"""

from doc_relay.config.settings import DatabaseSettings, Settings, get_settings

__all__ = [
    "DatabaseSettings",
    "Settings",
    "get_settings",
]
