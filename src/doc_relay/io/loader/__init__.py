"""
PostgreSQL bulk loader for doc_relay.

This package encodes transformed rows in COPY text format and streams them
into the sink inside an exclusively held connection.
"""

from .bulk_loader import BulkLoader
from .copy_format import encode_batch, encode_row, quote_copy, unescape_copy
from .models import BulkLoadError, CopyResult, RelationalSink

__all__ = [
    "BulkLoader",
    "BulkLoadError",
    "CopyResult",
    "RelationalSink",
    "encode_batch",
    "encode_row",
    "quote_copy",
    "unescape_copy",
]
