"""
Bulk loading of documents through a COPY session.

One call to copy_data holds one sink connection exclusively: it opens the
copy, streams one encoded line per document, ends the copy and checks the
server's result. Failures are reported through the sink; nothing is retried
here.
"""

import time
import uuid
from typing import Any, Iterable, Mapping, Optional

from doc_relay.infrastructure.schema.catalog import SchemaCatalog
from doc_relay.infrastructure.schema.core import CollectionSchema
from doc_relay.infrastructure.sql.dialects.postgresql import PostgreSQLDialect
from doc_relay.infrastructure.transforms.row_transformer import RowTransformer
from doc_relay.utils.logging import get_logger

from .copy_format import ROW_DELIMITER, encode_row
from .models import CopyResult, RelationalSink

logger = get_logger(__name__)


class BulkLoader:
    """Stream documents of one namespace into its table via COPY."""

    def __init__(
        self,
        catalog: SchemaCatalog,
        transformer: Optional[RowTransformer] = None,
    ):
        self.catalog = catalog
        self.transformer = transformer or RowTransformer(catalog)
        self._dialect = PostgreSQLDialect()

    def transform_to_copy(
        self,
        namespace: str,
        document: Mapping[str, Any],
        schema: Optional[CollectionSchema] = None,
    ) -> str:
        """Transform a document and encode it as one COPY line (no terminator)."""
        return encode_row(self.transformer.transform(namespace, document, schema))

    def build_copy_command(self, schema: CollectionSchema) -> str:
        return self._dialect.build_copy_from_stdin(
            schema.meta.table, self.catalog.output_columns(schema)
        )

    def copy_data(
        self,
        sink: RelationalSink,
        namespace: str,
        documents: Iterable[Mapping[str, Any]],
    ) -> CopyResult:
        """
        Load documents into the namespace's table.

        Args:
            sink: Relational sink providing exclusive connections
            namespace: Source namespace ("db.collection")
            documents: Documents to load, consumed once

        Returns:
            CopyResult with the number of rows streamed

        Raises:
            SchemaNotFoundError: If namespace is unmapped
            BulkLoadError: If the sink rejects the copy
        """
        schema = self.catalog.lookup_strict(namespace)
        command = self.build_copy_command(schema)
        table = schema.meta.table

        execution_id = uuid.uuid4().hex
        start_time = time.perf_counter()
        rows = 0

        log = logger.bind(
            namespace=namespace, table=table, execution_id=execution_id
        )
        log.info("database.copy.started")

        with sink.synchronize() as conn:
            session = conn.begin_bulk_copy(command)
            try:
                for document in documents:
                    line = self.transform_to_copy(namespace, document, schema)
                    session.write_line(line + ROW_DELIMITER)
                    rows += 1
                session.end()
            except Exception as exc:
                session.abort()
                log.error(
                    "database.copy.failed",
                    stage="stream",
                    rows=rows,
                    error=str(exc),
                )
                raise

            try:
                server_rows = session.check_result()
            except Exception as exc:
                log.error(
                    "database.copy.failed",
                    stage="result",
                    rows=rows,
                    error=str(exc),
                )
                sink.raise_error(exc)
                raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        if server_rows is not None and server_rows >= 0 and server_rows != rows:
            log.warning(
                "database.copy.row_count_mismatch",
                rows=rows,
                server_rows=server_rows,
            )
        log.info(
            "database.copy.completed",
            rows=rows,
            duration_ms=duration_ms,
        )
        return CopyResult(
            table=table,
            namespace=namespace,
            rows=rows,
            duration_ms=duration_ms,
            execution_id=execution_id,
            server_rows=server_rows,
        )


__all__ = ["BulkLoader"]
