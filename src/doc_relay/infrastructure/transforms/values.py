"""
Value kinds for document fields.

Documents coming from the document store mix plain Python scalars with BSON
types. Every value is classified into one ValueKind so coercion is a match
over kinds instead of scattered isinstance checks.
"""

import uuid
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from bson import ObjectId, json_util
from bson.decimal128 import Decimal128


class ValueKind(Enum):
    """Closed set of value kinds a document field can hold."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    TEXT = "text"
    BINARY = "binary"
    IDENTIFIER = "identifier"
    DOCUMENT = "document"
    ARRAY = "array"
    # Dates, timestamps, regexes and other opaque BSON scalars.
    OTHER = "other"


def classify(value: Any) -> ValueKind:
    """Return the ValueKind of a document value."""
    if value is None:
        return ValueKind.NULL
    # bool before NUMBER: bool is an int subclass
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float, Decimal, Decimal128)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.TEXT
    # bson.Binary subclasses bytes
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BINARY
    if isinstance(value, (ObjectId, uuid.UUID)):
        return ValueKind.IDENTIFIER
    if isinstance(value, Mapping):
        return ValueKind.DOCUMENT
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    return ValueKind.OTHER


def binary_to_text(value: Any) -> str:
    """
    Carry raw bytes as text.

    Bytes that are not valid UTF-8 survive as lone surrogates
    (surrogateescape) so the copy serializer can still see and replace them.
    """
    return bytes(value).decode("utf-8", "surrogateescape")


def coerce_value(value: Any) -> Any:
    """Convert binary and identifier values to strings; pass everything else."""
    kind = classify(value)
    if kind is ValueKind.BINARY:
        return binary_to_text(value)
    if kind is ValueKind.IDENTIFIER:
        return str(value)
    return value


def to_json_text(value: Any) -> str:
    """
    Serialize a document or array to compact JSON.

    BSON types use MongoDB relaxed extended JSON (ObjectId -> {"$oid": ...},
    datetime -> {"$date": ...}); non-ASCII text is kept as-is.
    """
    return json_util.dumps(value, separators=(",", ":"), ensure_ascii=False)


__all__ = [
    "ValueKind",
    "classify",
    "binary_to_text",
    "coerce_value",
    "to_json_text",
]
