"""
Document transformation: value kinds, dotted path resolution and row building.

Transforms are pure: the same document and schema always give the same row,
and the input document is never mutated.
"""

from .path_resolver import resolve, split_path
from .row_transformer import Row, RowTransformer, extract_row, overflow_json
from .values import ValueKind, classify, coerce_value, to_json_text

__all__ = [
    "resolve",
    "split_path",
    "Row",
    "RowTransformer",
    "extract_row",
    "overflow_json",
    "ValueKind",
    "classify",
    "coerce_value",
    "to_json_text",
]
