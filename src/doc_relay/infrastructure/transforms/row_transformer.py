"""
Document to row transformation.

Turns one document into one row under one CollectionSchema. The caller's
document is never modified: extraction works on an owned copy, and the
fields left over after extraction are returned as an explicit map that
feeds the `_extra_props` column.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from doc_relay.infrastructure.schema.catalog import SchemaCatalog
from doc_relay.infrastructure.schema.core import CollectionSchema
from doc_relay.utils.logging import get_logger

from .path_resolver import resolve
from .values import ValueKind, classify, coerce_value, to_json_text

logger = get_logger(__name__)

Row = List[Any]


def extract_row(
    document: Mapping[str, Any], schema: CollectionSchema
) -> Tuple[Row, Dict[str, Any]]:
    """
    Extract declared column values from a document.

    Plain field names are popped from an owned copy; dotted paths are read
    without removing anything. Binary and identifier values are coerced to
    strings.

    Args:
        document: Source document (left untouched)
        schema: Collection schema fixing column order

    Returns:
        Tuple of (column values in declared order, leftover fields)
    """
    leftover = dict(document)
    values: Row = []
    for column in schema.columns:
        if column.is_nested:
            value = resolve(leftover, column.name)
        else:
            value = leftover.pop(column.name, None)
        values.append(coerce_value(value))
    return values, leftover


def overflow_json(leftover: Mapping[str, Any]) -> str:
    """Serialize leftover fields for `_extra_props`, dropping binary payloads."""
    kept = {
        key: value
        for key, value in leftover.items()
        if classify(value) is not ValueKind.BINARY
    }
    return to_json_text(kept)


class RowTransformer:
    """Convert documents into ordered rows using a SchemaCatalog."""

    def __init__(self, catalog: SchemaCatalog):
        self.catalog = catalog

    def transform(
        self,
        namespace: str,
        document: Mapping[str, Any],
        schema: Optional[CollectionSchema] = None,
    ) -> Row:
        """
        Build the row for one document.

        The row holds exactly one value per output column: the declared
        columns in order, then the `_extra_props` JSON when enabled.

        Raises:
            SchemaNotFoundError: If no schema is given and namespace is unmapped
        """
        if schema is None:
            schema = self.catalog.lookup_strict(namespace)

        row, leftover = extract_row(document, schema)
        if schema.meta.extra_props:
            row.append(overflow_json(leftover))

        logger.debug("transform.row.built", namespace=namespace, width=len(row))
        return row


__all__ = [
    "Row",
    "RowTransformer",
    "extract_row",
    "overflow_json",
]
