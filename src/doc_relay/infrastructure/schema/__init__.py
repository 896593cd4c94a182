"""Infrastructure-level collection schema catalog.

This package lives under `infrastructure/` so the transformer and the
loader can share schema definitions without importing `doc_relay.io`.
"""

from doc_relay.exceptions import SchemaError, SchemaNotFoundError, SchemaParseError

from .catalog import SchemaCatalog, parse_collection_spec, split_namespace
from .core import (
    EXTRA_PROPS_COLUMN,
    PATH_SEPARATOR,
    PRIMARY_KEY_COLUMN,
    CollectionSchema,
    ColumnSpec,
    TableMeta,
)
from .ddl_generator import column_definitions, create_tables, generate_create_table_sql

__all__ = [
    "EXTRA_PROPS_COLUMN",
    "PATH_SEPARATOR",
    "PRIMARY_KEY_COLUMN",
    "CollectionSchema",
    "ColumnSpec",
    "TableMeta",
    "SchemaCatalog",
    "SchemaError",
    "SchemaNotFoundError",
    "SchemaParseError",
    "parse_collection_spec",
    "split_namespace",
    "column_definitions",
    "create_tables",
    "generate_create_table_sql",
]
