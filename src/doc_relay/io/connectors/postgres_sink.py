"""PostgreSQL sink backed by a psycopg2 connection pool.

The sink hands out pooled connections exclusively through `synchronize()`:
the connection is committed on success, rolled back on failure and always
returned to the pool. psycopg2 only offers a pull-based COPY
(`cursor.copy_expert`), so a copy session buffers the lines it is given and
runs the COPY when it is ended; the outcome is then reported by
`check_result()`.
"""

import io
import time
from contextlib import contextmanager
from typing import Iterator, List, NoReturn, Optional, Sequence

import psycopg2
from psycopg2.pool import ThreadedConnectionPool

from doc_relay.config import get_settings
from doc_relay.exceptions import BulkLoadError, SinkError
from doc_relay.infrastructure.sql.dialects.postgresql import PostgreSQLDialect
from doc_relay.io.loader.models import ColumnDefs
from doc_relay.utils.logging import get_logger

logger = get_logger(__name__)


class PostgresCopySession:
    """A COPY ... FROM STDIN session on one psycopg2 connection."""

    def __init__(self, connection, command: str):
        self._connection = connection
        self._command = command
        self._buffer = io.StringIO()
        self._lines = 0
        self._state = "open"
        self._error: Optional[psycopg2.Error] = None
        self._rowcount: Optional[int] = None

    @property
    def lines_written(self) -> int:
        return self._lines

    def write_line(self, text: str) -> None:
        if self._state != "open":
            raise BulkLoadError(f"Copy session is {self._state}, cannot write")
        self._buffer.write(text)
        self._lines += 1

    def end(self) -> None:
        """Signal end-of-copy; the server outcome is kept for check_result()."""
        if self._state != "open":
            raise BulkLoadError(f"Copy session is {self._state}, cannot end")
        self._buffer.seek(0)
        try:
            with self._connection.cursor() as cursor:
                cursor.copy_expert(self._command, self._buffer)
                self._rowcount = cursor.rowcount
        except psycopg2.Error as e:
            self._error = e
        finally:
            self._state = "ended"
            self._buffer.close()

    def check_result(self) -> Optional[int]:
        """Raise the server error of the copy, or return the copied row count."""
        if self._state != "ended":
            raise BulkLoadError("Copy session has not been ended")
        if self._error is not None:
            raise self._error
        return self._rowcount

    def abort(self) -> None:
        """Discard buffered lines; the surrounding transaction is rolled back."""
        if self._state == "open":
            self._buffer.close()
        self._state = "aborted"


class PostgresSinkConnection:
    """Exclusive view of one pooled connection."""

    def __init__(self, connection):
        self.connection = connection

    def begin_bulk_copy(self, command: str) -> PostgresCopySession:
        return PostgresCopySession(self.connection, command)

    def execute(self, sql: str) -> None:
        with self.connection.cursor() as cursor:
            cursor.execute(sql)


class PostgresSink:
    """Relational sink with pooling, DDL helpers and COPY sessions."""

    _DEFAULT_RETRY_ATTEMPTS = 3
    _DEFAULT_BACKOFF_MS = 200

    def __init__(
        self,
        connection_url: Optional[str] = None,
        pool_size: Optional[int] = None,
        connect_timeout: Optional[int] = None,
    ):
        settings = get_settings()
        self.connection_url = (
            connection_url or settings.get_database_connection_string()
        )
        self.pool_size = pool_size or settings.DB_POOL_SIZE
        self.connect_timeout = connect_timeout or settings.DB_CONNECT_TIMEOUT
        self._pool: Optional[ThreadedConnectionPool] = None
        self._dialect = PostgreSQLDialect()

        logger.info("database.sink.initialized", pool_size=self.pool_size)

    def close(self) -> None:
        """Close the underlying connection pool."""
        if self._pool:
            self._pool.closeall()
            self._pool = None
            logger.info("database.sink.closed")

    def _get_connection_with_retry(self):
        """Acquire a connection from the pool with retry on transient errors."""
        if self._pool is None or self._pool.closed:
            try:
                self._pool = ThreadedConnectionPool(
                    minconn=1,
                    maxconn=self.pool_size,
                    dsn=self.connection_url,
                    connect_timeout=self.connect_timeout,
                )
            except psycopg2.Error as e:
                raise SinkError(f"Failed to create pool: {e}") from e

        last_error = None
        for attempt in range(self._DEFAULT_RETRY_ATTEMPTS):
            try:
                return self._pool.getconn()
            except psycopg2.Error as e:
                last_error = e
                wait_ms = self._DEFAULT_BACKOFF_MS * (2**attempt)
                logger.warning(
                    "database.sink.acquire_retry", attempt=attempt + 1, wait_ms=wait_ms
                )
                time.sleep(wait_ms / 1000)

        raise SinkError(
            f"Failed to acquire connection after retries: {last_error}"
        ) from last_error

    @contextmanager
    def synchronize(self) -> Iterator[PostgresSinkConnection]:
        """Hold one pooled connection exclusively for the duration of the block."""
        conn = self._get_connection_with_retry()
        try:
            yield PostgresSinkConnection(conn)
            conn.commit()
        except BaseException:
            try:
                conn.rollback()
            except psycopg2.Error as rollback_error:
                logger.warning(
                    "database.sink.rollback_failed", error=str(rollback_error)
                )
            raise
        finally:
            self._release(conn)

    def _release(self, conn) -> None:
        """Return conn to the pool; broken connections are discarded, not reused."""
        if self._pool is None:
            # Pool closed while the connection was held
            conn.close()
            return
        if conn.closed:
            logger.warning("database.sink.connection_discarded")
            self._pool.putconn(conn, close=True)
        else:
            self._pool.putconn(conn)

    def _execute_ddl(self, table: str, statements: List[str]) -> None:
        try:
            with self.synchronize() as conn:
                for sql in statements:
                    conn.execute(sql)
        except psycopg2.Error as e:
            logger.error("database.ddl.failed", table=table, error=str(e))
            raise SinkError(f"DDL failed for table {table}: {e}") from e

    def create_table_if_absent(
        self, name: str, column_defs: ColumnDefs, primary_key: Sequence[str]
    ) -> None:
        self._execute_ddl(
            name,
            [
                self._dialect.build_create_table(
                    name, column_defs, primary_key, if_not_exists=True
                )
            ],
        )

    def create_table_clobber(
        self, name: str, column_defs: ColumnDefs, primary_key: Sequence[str]
    ) -> None:
        self._execute_ddl(
            name,
            [
                self._dialect.build_drop_table(name),
                self._dialect.build_create_table(name, column_defs, primary_key),
            ],
        )

    def raise_error(self, exc: BaseException) -> NoReturn:
        """Report a copy failure as BulkLoadError, chained to the driver error."""
        pgcode = getattr(exc, "pgcode", None)
        message = f"Bulk copy failed: {exc}"
        if pgcode:
            message = f"{message} (pgcode={pgcode})"
        raise BulkLoadError(message) from exc
