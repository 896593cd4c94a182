"""Core collection schema types for doc_relay.

A CollectionSchema fixes the shape of the rows produced from one source
collection: declared columns in order, then the optional overflow column.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

PATH_SEPARATOR = "."
EXTRA_PROPS_COLUMN = "_extra_props"
EXTRA_PROPS_TYPE = "TEXT"
PRIMARY_KEY_COLUMN = "_id"


@dataclass(frozen=True)
class ColumnSpec:
    """A declared (field path, SQL type) pair."""

    name: str
    sql_type: str

    @property
    def is_nested(self) -> bool:
        """True when the field path addresses a nested document field."""
        return PATH_SEPARATOR in self.name


@dataclass(frozen=True)
class TableMeta:
    """Destination table metadata for a collection."""

    table: str
    extra_props: bool = False


@dataclass(frozen=True)
class CollectionSchema:
    """Complete mapping from one source collection to one table."""

    namespace: str
    columns: Tuple[ColumnSpec, ...]
    meta: TableMeta

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    @property
    def output_columns(self) -> List[str]:
        """Column names in row order, including the overflow column if enabled."""
        names = self.column_names
        if self.meta.extra_props:
            names.append(EXTRA_PROPS_COLUMN)
        return names

    @property
    def row_width(self) -> int:
        return len(self.columns) + (1 if self.meta.extra_props else 0)


__all__ = [
    "PATH_SEPARATOR",
    "EXTRA_PROPS_COLUMN",
    "EXTRA_PROPS_TYPE",
    "PRIMARY_KEY_COLUMN",
    "ColumnSpec",
    "TableMeta",
    "CollectionSchema",
]
