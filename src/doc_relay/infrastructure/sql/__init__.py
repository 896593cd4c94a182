"""
SQL module for centralized SQL generation.

This module provides reusable utilities for building SQL statements with
proper identifier quoting and PostgreSQL-specific syntax.
"""

from .core.identifier import quote_column_list, quote_identifier
from .dialects.postgresql import PostgreSQLDialect

__all__ = [
    "quote_identifier",
    "quote_column_list",
    "PostgreSQLDialect",
]
