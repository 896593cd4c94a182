"""DDL generation for mapped collections.

Every mapped collection gets exactly one table: declared columns in order,
an `_extra_props` TEXT column when overflow capture is enabled, and a
primary key on `_id`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Tuple

from doc_relay.exceptions import SchemaParseError
from doc_relay.infrastructure.sql.dialects.postgresql import PostgreSQLDialect
from doc_relay.utils.logging import get_logger

from .core import (
    EXTRA_PROPS_COLUMN,
    EXTRA_PROPS_TYPE,
    PRIMARY_KEY_COLUMN,
    CollectionSchema,
)

if TYPE_CHECKING:
    from .catalog import SchemaCatalog

logger = get_logger(__name__)

_dialect = PostgreSQLDialect()


def column_definitions(schema: CollectionSchema) -> List[Tuple[str, str]]:
    """(name, SQL type) pairs in table order, including `_extra_props` if enabled."""
    defs = [(column.name, column.sql_type) for column in schema.columns]
    if schema.meta.extra_props:
        defs.append((EXTRA_PROPS_COLUMN, EXTRA_PROPS_TYPE))
    return defs


def primary_key(schema: CollectionSchema) -> List[str]:
    if PRIMARY_KEY_COLUMN not in schema.column_names:
        raise SchemaParseError(
            f"Table '{schema.meta.table}' does not declare the "
            f"'{PRIMARY_KEY_COLUMN}' primary key column",
            namespace=schema.namespace,
        )
    return [PRIMARY_KEY_COLUMN]


def generate_create_table_sql(schema: CollectionSchema, if_not_exists: bool = False) -> str:
    """Generate the CREATE TABLE statement for one collection."""
    return _dialect.build_create_table(
        schema.meta.table,
        column_definitions(schema),
        primary_key(schema),
        if_not_exists=if_not_exists,
    )


def create_tables(catalog: "SchemaCatalog", sink: Any, clobber: bool = False) -> List[str]:
    """
    Issue one create-table call per mapped collection.

    All schemas are checked for an `_id` column before anything is sent to
    the sink, so a bad entry never leaves the sink half-migrated.

    Args:
        catalog: Collection map to materialise
        sink: Object providing create_table_if_absent / create_table_clobber
        clobber: Drop and recreate existing tables instead of keeping them

    Returns:
        Table names in the order they were issued
    """
    plans = [
        (schema, column_definitions(schema), primary_key(schema))
        for _, schema in catalog.namespaces()
    ]

    create = sink.create_table_clobber if clobber else sink.create_table_if_absent
    tables: List[str] = []
    for schema, defs, pk in plans:
        logger.info(
            "schema.table.creating",
            table=schema.meta.table,
            namespace=schema.namespace,
            clobber=clobber,
        )
        create(schema.meta.table, defs, pk)
        tables.append(schema.meta.table)
    return tables


__all__ = [
    "column_definitions",
    "primary_key",
    "generate_create_table_sql",
    "create_tables",
]
