"""Loading of the collection map from configuration files."""

from .loader import SchemaFileError, create_schema, load_catalog, load_schema_spec

__all__ = [
    "SchemaFileError",
    "create_schema",
    "load_catalog",
    "load_schema_spec",
]
