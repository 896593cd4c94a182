"""
PostgreSQL COPY text format encoding.

This is a wire contract with the server's bulk-load reader:
- fields are separated by a tab, rows by a newline
- NULL is the two characters backslash, N
- booleans are `t` / `f`
- backslash, tab, newline and carriage return are prefixed with a backslash

Text is first normalised to valid UTF-8 (invalid byte sequences become
U+FFFD) and the escaping is applied to the normalised text.
"""

import re
from typing import Any, Iterable, Optional, Sequence

from doc_relay.infrastructure.transforms.values import ValueKind, classify, to_json_text

NULL_MARKER = "\\N"
TRUE_MARKER = "t"
FALSE_MARKER = "f"
FIELD_DELIMITER = "\t"
ROW_DELIMITER = "\n"

_ESCAPE_PATTERN = re.compile(r"([\\\t\n\r])")
_UNESCAPE_PATTERN = re.compile(r"\\(.)", re.DOTALL)
_BACKSLASH_SEQUENCES = {
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}


def _raw_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    text = value if isinstance(value, str) else str(value)
    try:
        return text.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        # Surrogates outside the escape range (e.g. from "\ud800" in JSON)
        return text.encode("utf-8", "surrogatepass")


def normalize_text(value: Any) -> str:
    """Reinterpret a value as raw bytes and decode it as UTF-8 with replacement."""
    return _raw_bytes(value).decode("utf-8", "replace")


def escape_text(text: str) -> str:
    """Prefix backslash, tab, newline and carriage return with a backslash."""
    return _ESCAPE_PATTERN.sub(r"\\\1", text)


def quote_copy(value: Any) -> str:
    """
    Encode one field value.

    Examples:
        >>> quote_copy(None)
        '\\\\N'
        >>> quote_copy(True), quote_copy(False)
        ('t', 'f')
        >>> quote_copy("a\\tb")
        'a\\\\\\tb'
    """
    kind = classify(value)
    if kind is ValueKind.NULL:
        return NULL_MARKER
    if kind is ValueKind.BOOL:
        return TRUE_MARKER if value else FALSE_MARKER
    if kind in (ValueKind.DOCUMENT, ValueKind.ARRAY):
        value = to_json_text(value)
    return escape_text(normalize_text(value))


def encode_row(row: Sequence[Any]) -> str:
    """Encode a row as one tab-separated line (without line terminator)."""
    return FIELD_DELIMITER.join(quote_copy(value) for value in row)


def encode_batch(rows: Iterable[Sequence[Any]]) -> str:
    """Encode rows one per line, joined with newlines."""
    return ROW_DELIMITER.join(encode_row(row) for row in rows)


def unescape_copy(field: str) -> Optional[str]:
    """
    Decode one field the way the server's COPY reader does.

    Only the sequences this encoder can produce, plus the standard letter
    escapes, are handled; octal and hex escapes are not.
    """
    if field == NULL_MARKER:
        return None

    def _replace(match: "re.Match[str]") -> str:
        char = match.group(1)
        return _BACKSLASH_SEQUENCES.get(char, char)

    return _UNESCAPE_PATTERN.sub(_replace, field)


__all__ = [
    "NULL_MARKER",
    "FIELD_DELIMITER",
    "ROW_DELIMITER",
    "normalize_text",
    "escape_text",
    "quote_copy",
    "encode_row",
    "encode_batch",
    "unescape_copy",
]
