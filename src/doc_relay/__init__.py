"""doc_relay: map document-store collections onto relational tables.

Documents are transformed into fixed-shape rows according to a collection
map, encoded in PostgreSQL COPY text format and bulk-loaded into the sink.
"""

__version__ = "0.1.0"
