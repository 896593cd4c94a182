"""
SQL identifier handling utilities.

Provides quoting of PostgreSQL identifiers (table names, column names),
including dotted field paths used as column names, to prevent SQL injection.
"""

# PostgreSQL NAMEDATALEN - 1
MAX_IDENTIFIER_LENGTH = 63


def quote_identifier(name: str) -> str:
    """
    Quote a PostgreSQL identifier with double quotes and escape internal quotes.

    Args:
        name: Identifier to quote (table, column name)

    Returns:
        Properly quoted identifier

    Raises:
        ValueError: If name is empty or longer than PostgreSQL allows

    Examples:
        >>> quote_identifier("_id")
        '"_id"'
        >>> quote_identifier("author.name")
        '"author.name"'
        >>> quote_identifier('odd"name')
        '"odd""name"'
    """
    if not name or not isinstance(name, str):
        raise ValueError("Identifier name must be non-empty string")

    if len(name.encode("utf-8")) > MAX_IDENTIFIER_LENGTH:
        raise ValueError(
            f"Identifier too long (max {MAX_IDENTIFIER_LENGTH} bytes): {name!r}"
        )

    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def quote_column_list(columns) -> str:
    """Quote and comma-join column names, preserving order."""
    return ",".join(quote_identifier(column) for column in columns)
