"""Core SQL utilities package."""

from .identifier import MAX_IDENTIFIER_LENGTH, quote_column_list, quote_identifier

__all__ = [
    "MAX_IDENTIFIER_LENGTH",
    "quote_identifier",
    "quote_column_list",
]
