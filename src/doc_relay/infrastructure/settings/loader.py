"""
Collection map loader for doc_relay.

Reads the collection-to-table map from YAML (preferred) or JSON and builds
the SchemaCatalog from it. Validation of the map's structure is the
catalog's job; this module only deals with files and parsing.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from doc_relay.config import get_settings
from doc_relay.exceptions import DocRelayError
from doc_relay.infrastructure.schema.catalog import SchemaCatalog
from doc_relay.utils.logging import get_logger

logger = get_logger(__name__)

YAML_SUFFIXES = {".yml", ".yaml"}
JSON_SUFFIXES = {".json"}


class SchemaFileError(DocRelayError):
    """Raised when the collection map file cannot be read or parsed."""

    pass


def load_schema_spec(path: str) -> Dict[str, Any]:
    """
    Load the raw collection map.

    Args:
        path: Path to a .yml/.yaml or .json file

    Returns:
        Nested mapping {db: {collection: {columns: [...], meta: {...}}}}

    Raises:
        SchemaFileError: If the file is missing, unsupported or unparsable
    """
    config_path = Path(path)

    if not config_path.exists():
        raise SchemaFileError(f"Collection map not found: {path}")

    suffix = config_path.suffix.lower()
    if suffix not in YAML_SUFFIXES | JSON_SUFFIXES:
        raise SchemaFileError(
            f"Unsupported collection map format '{suffix}' (expected YAML or JSON)"
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if suffix in YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        logger.error(
            "schema_loader.parse_error",
            file_path=str(config_path),
            error=str(e),
        )
        raise SchemaFileError(f"Invalid collection map {path}: {e}") from e
    except OSError as e:
        raise SchemaFileError(f"Failed to read collection map {path}: {e}") from e

    # Empty file: an empty catalog is valid
    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise SchemaFileError(
            f"Collection map must be a mapping, got {type(data).__name__}"
        )

    logger.debug(
        "schema_loader.loaded",
        file_path=str(config_path),
        databases=len(data),
    )
    return data


def load_catalog(path: Optional[str] = None) -> SchemaCatalog:
    """Build a SchemaCatalog from a file, defaulting to settings.schema_file."""
    return SchemaCatalog(load_schema_spec(path or get_settings().schema_file))


def create_schema(
    sink: Any,
    catalog: Optional[SchemaCatalog] = None,
    clobber: Optional[bool] = None,
) -> List[str]:
    """
    Create the destination tables for every mapped collection.

    Args:
        sink: Relational sink receiving the create-table calls
        catalog: Catalog to materialise; loaded from settings.schema_file if None
        clobber: Drop existing tables first; defaults to settings.clobber_tables

    Returns:
        Names of the tables issued to the sink
    """
    if catalog is None:
        catalog = load_catalog()
    if clobber is None:
        clobber = get_settings().clobber_tables
    return catalog.generate_ddl(sink, clobber=clobber)


__all__ = [
    "SchemaFileError",
    "load_schema_spec",
    "load_catalog",
    "create_schema",
]
