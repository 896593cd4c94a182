"""Immutable catalog of collection-to-table mappings.

The catalog is built in one pass from the nested collection map

    {db: {collection: {"columns": [{field: type}, ...],
                       "meta": {"table": str, "extra_props": bool}}}}

and only exposes read-only lookups afterwards, so it can be shared between
threads without locking.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from doc_relay.exceptions import SchemaNotFoundError, SchemaParseError
from doc_relay.infrastructure.sql.core.identifier import MAX_IDENTIFIER_LENGTH
from doc_relay.utils.logging import get_logger

from .core import CollectionSchema, ColumnSpec, TableMeta
from .ddl_generator import create_tables

logger = get_logger(__name__)


class TableMetaModel(BaseModel):
    """Schema for the `meta` block of a collection entry."""

    model_config = ConfigDict(extra="ignore")

    table: str = Field(..., min_length=1, description="Destination table name")
    extra_props: bool = Field(
        False, description="Capture unmapped fields in an _extra_props column"
    )


class CollectionSpecModel(BaseModel):
    """Schema for a single collection entry."""

    model_config = ConfigDict(extra="ignore")

    columns: List[Any] = Field(..., description="Ordered single-key column entries")
    meta: TableMetaModel


def split_namespace(namespace: str) -> Tuple[str, str]:
    """Split "db.collection" on the first dot; collection names may contain dots."""
    db_name, _, collection = namespace.partition(".")
    return db_name, collection


def _check_identifier_length(namespace: str, kind: str, name: str) -> None:
    if len(name.encode("utf-8")) > MAX_IDENTIFIER_LENGTH:
        raise SchemaParseError(
            f"{kind} name '{name}' is longer than {MAX_IDENTIFIER_LENGTH} bytes",
            namespace=namespace,
        )


def _parse_columns(namespace: str, entries: List[Any]) -> Tuple[ColumnSpec, ...]:
    columns: List[ColumnSpec] = []
    seen = set()
    for entry in entries:
        if not isinstance(entry, Mapping) or len(entry) != 1:
            raise SchemaParseError(
                f"Invalid column entry {entry!r}: expected a single-key mapping",
                namespace=namespace,
            )
        name, sql_type = next(iter(entry.items()))
        if not isinstance(name, str) or not name:
            raise SchemaParseError(
                f"Invalid column name {name!r}", namespace=namespace
            )
        if not isinstance(sql_type, str) or not sql_type.strip():
            raise SchemaParseError(
                f"Column '{name}' needs a SQL type, got {sql_type!r}",
                namespace=namespace,
            )
        _check_identifier_length(namespace, "Column", name)
        if name in seen:
            raise SchemaParseError(
                f"Duplicate column '{name}'", namespace=namespace
            )
        seen.add(name)
        columns.append(ColumnSpec(name=name, sql_type=sql_type.strip()))
    return tuple(columns)


def parse_collection_spec(namespace: str, spec: Any) -> CollectionSchema:
    """Validate one collection entry and build its CollectionSchema."""
    if not isinstance(spec, Mapping):
        raise SchemaParseError(
            f"Collection entry must be a mapping, got {type(spec).__name__}",
            namespace=namespace,
        )
    try:
        model = CollectionSpecModel.model_validate(dict(spec))
    except ValidationError as e:
        raise SchemaParseError(
            f"Invalid collection entry: {e}", namespace=namespace
        ) from e

    _check_identifier_length(namespace, "Table", model.meta.table)

    return CollectionSchema(
        namespace=namespace,
        columns=_parse_columns(namespace, model.columns),
        meta=TableMeta(table=model.meta.table, extra_props=model.meta.extra_props),
    )


class SchemaCatalog:
    """Read-only lookup of CollectionSchema by source namespace."""

    def __init__(self, spec: Mapping[str, Any]):
        if not isinstance(spec, Mapping):
            raise SchemaParseError(
                f"Collection map must be a mapping, got {type(spec).__name__}"
            )

        catalog: Dict[str, Mapping[str, CollectionSchema]] = {}
        for db_name, collections in spec.items():
            if not isinstance(collections, Mapping):
                raise SchemaParseError(
                    f"Entry for source database '{db_name}' must be a mapping"
                )
            parsed: Dict[str, CollectionSchema] = {}
            for collection_name, collection_spec in collections.items():
                namespace = f"{db_name}.{collection_name}"
                parsed[collection_name] = parse_collection_spec(
                    namespace, collection_spec
                )
            catalog[db_name] = MappingProxyType(parsed)

        self._map: Mapping[str, Mapping[str, CollectionSchema]] = MappingProxyType(
            catalog
        )
        logger.debug(
            "schema.catalog.built",
            databases=len(self._map),
            collections=len(self),
        )

    def __len__(self) -> int:
        return sum(len(collections) for collections in self._map.values())

    def __contains__(self, namespace: object) -> bool:
        return isinstance(namespace, str) and self._find(namespace) is not None

    def __repr__(self) -> str:
        return f"SchemaCatalog(namespaces={[ns for ns, _ in self.namespaces()]!r})"

    def _find(self, namespace: str) -> Optional[CollectionSchema]:
        db_name, collection = split_namespace(namespace)
        return self._map.get(db_name, {}).get(collection)

    def lookup(self, namespace: str) -> Optional[CollectionSchema]:
        """Return the schema for namespace, or None when it is unmapped."""
        schema = self._find(namespace)
        if schema is None:
            logger.debug("schema.namespace.unmapped", namespace=namespace)
        return schema

    def lookup_strict(self, namespace: str) -> CollectionSchema:
        """Return the schema for namespace or raise SchemaNotFoundError."""
        schema = self.lookup(namespace)
        if schema is None:
            raise SchemaNotFoundError(namespace)
        return schema

    def table_name(self, namespace: str) -> str:
        return self.lookup_strict(namespace).meta.table

    @staticmethod
    def output_columns(schema: CollectionSchema) -> List[str]:
        return schema.output_columns

    def source_databases(self) -> List[str]:
        """All source database names, in declaration order."""
        return list(self._map.keys())

    def collections_for(self, db_name: str) -> List[str]:
        """Collection names mapped for a source database (empty when unknown)."""
        return list(self._map.get(db_name, {}).keys())

    def namespaces(self) -> Iterator[Tuple[str, CollectionSchema]]:
        """Iterate over (namespace, schema) pairs in declaration order."""
        for collections in self._map.values():
            for schema in collections.values():
                yield schema.namespace, schema

    def generate_ddl(self, sink: Any, clobber: bool = False) -> List[str]:
        """Create one table per mapped collection on the sink.

        Returns the names of the tables that were issued.
        """
        return create_tables(self, sink, clobber=clobber)


__all__ = [
    "TableMetaModel",
    "CollectionSpecModel",
    "SchemaCatalog",
    "parse_collection_spec",
    "split_namespace",
]
