"""
Exception hierarchy for doc_relay.

Schema problems are raised eagerly while the catalog is built; sink
failures are raised while a copy session or DDL statement runs. Per-document
anomalies are never errors.
"""

from typing import Optional


class DocRelayError(Exception):
    """Base exception for all doc_relay errors."""

    pass


class SchemaError(DocRelayError):
    """Base exception for collection map problems."""

    pass


class SchemaParseError(SchemaError):
    """
    Raised when the collection map is malformed.

    Args:
        message: Error description
        namespace: "db.collection" the offending entry belongs to (optional)
    """

    def __init__(self, message: str, namespace: Optional[str] = None):
        self.namespace = namespace
        if namespace:
            message = f"{message} (namespace='{namespace}')"
        super().__init__(message)


class SchemaNotFoundError(SchemaError):
    """Raised when a namespace has no mapping at strict lookup."""

    def __init__(self, namespace: str):
        self.namespace = namespace
        super().__init__(f"No mapping for namespace: {namespace}")


class SinkError(DocRelayError):
    """Raised when the relational sink rejects a statement."""

    pass


class BulkLoadError(SinkError):
    """Raised when a bulk-copy session fails on the sink."""

    pass
