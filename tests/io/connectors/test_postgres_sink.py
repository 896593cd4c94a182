"""
Unit tests for PostgresSink with a mocked psycopg2 pool.
"""

from unittest.mock import MagicMock

import psycopg2
import pytest

from doc_relay.exceptions import BulkLoadError, SinkError
from doc_relay.io.connectors import postgres_sink
from doc_relay.io.connectors.postgres_sink import (
    PostgresCopySession,
    PostgresSink,
)

DSN = "postgresql://u:p@localhost:5432/doc_relay_test"


def _mock_connection():
    conn = MagicMock(name="connection")
    cursor = MagicMock(name="cursor")
    cursor.rowcount = 0
    conn.closed = 0
    conn.cursor.return_value.__enter__.return_value = cursor
    return conn, cursor


@pytest.fixture
def pg(monkeypatch):
    """Patch ThreadedConnectionPool and return (sink, pool, connection, cursor)."""
    conn, cursor = _mock_connection()
    pool = MagicMock(name="pool")
    pool.closed = False
    pool.getconn.return_value = conn
    pool_cls = MagicMock(name="ThreadedConnectionPool", return_value=pool)
    monkeypatch.setattr(postgres_sink, "ThreadedConnectionPool", pool_cls)
    monkeypatch.setattr(postgres_sink.time, "sleep", lambda _seconds: None)

    sink = PostgresSink(connection_url=DSN, pool_size=2, connect_timeout=3)
    return sink, pool, conn, cursor, pool_cls


def _executed(cursor):
    return [c.args[0] for c in cursor.execute.call_args_list]


class TestSynchronize:
    def test_pool_created_lazily(self, pg):
        sink, pool, conn, cursor, pool_cls = pg
        pool_cls.assert_not_called()

        with sink.synchronize():
            pass

        pool_cls.assert_called_once_with(
            minconn=1, maxconn=2, dsn=DSN, connect_timeout=3
        )

    def test_commit_and_release_on_success(self, pg):
        sink, pool, conn, _, _ = pg

        with sink.synchronize() as sink_conn:
            assert sink_conn.connection is conn

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        pool.putconn.assert_called_once_with(conn)

    def test_rollback_and_release_on_error(self, pg):
        sink, pool, conn, _, _ = pg

        with pytest.raises(RuntimeError, match="boom"):
            with sink.synchronize():
                raise RuntimeError("boom")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        pool.putconn.assert_called_once_with(conn)

    def test_rollback_failure_keeps_original_error(self, pg):
        sink, pool, conn, _, _ = pg
        conn.rollback.side_effect = psycopg2.InterfaceError("connection already closed")

        with pytest.raises(RuntimeError, match="boom"):
            with sink.synchronize():
                raise RuntimeError("boom")

        pool.putconn.assert_called_once_with(conn)

    def test_acquire_retries_then_succeeds(self, pg):
        sink, pool, conn, _, _ = pg
        pool.getconn.side_effect = [psycopg2.OperationalError("busy"), conn]

        with sink.synchronize() as sink_conn:
            assert sink_conn.connection is conn

        assert pool.getconn.call_count == 2

    def test_acquire_gives_up_after_retries(self, pg):
        sink, pool, _, _, _ = pg
        pool.getconn.side_effect = psycopg2.OperationalError("down")

        with pytest.raises(SinkError, match="after retries") as exc_info:
            with sink.synchronize():
                pass

        assert pool.getconn.call_count == PostgresSink._DEFAULT_RETRY_ATTEMPTS
        assert isinstance(exc_info.value.__cause__, psycopg2.OperationalError)

    def test_pool_creation_failure(self, pg):
        sink, _, _, _, pool_cls = pg
        pool_cls.side_effect = psycopg2.OperationalError("no route")

        with pytest.raises(SinkError, match="Failed to create pool"):
            with sink.synchronize():
                pass

    def test_broken_connection_discarded(self, pg):
        sink, pool, conn, _, _ = pg

        with pytest.raises(psycopg2.OperationalError):
            with sink.synchronize():
                conn.closed = 2
                raise psycopg2.OperationalError("server closed the connection")

        pool.putconn.assert_called_once_with(conn, close=True)

    def test_close_while_connection_held(self, pg):
        sink, pool, conn, _, _ = pg

        with sink.synchronize():
            sink.close()

        pool.putconn.assert_not_called()
        conn.close.assert_called_once()

    def test_close(self, pg):
        sink, pool, _, _, _ = pg
        with sink.synchronize():
            pass

        sink.close()
        pool.closeall.assert_called_once()
        sink.close()
        pool.closeall.assert_called_once()


class TestDDL:
    COLUMNS = [("_id", "TEXT"), ("email", "TEXT")]

    def test_create_table_if_absent(self, pg):
        sink, _, conn, cursor, _ = pg

        sink.create_table_if_absent("shop_users", self.COLUMNS, ["_id"])

        assert _executed(cursor) == [
            'CREATE TABLE IF NOT EXISTS "shop_users" (\n'
            '  "_id" TEXT,\n'
            '  "email" TEXT,\n'
            '  PRIMARY KEY ("_id")\n'
            ")"
        ]
        conn.commit.assert_called_once()

    def test_create_table_clobber_drops_first(self, pg):
        sink, _, _, cursor, _ = pg

        sink.create_table_clobber("shop_users", self.COLUMNS, ["_id"])

        statements = _executed(cursor)
        assert statements[0] == 'DROP TABLE IF EXISTS "shop_users"'
        assert statements[1].startswith('CREATE TABLE "shop_users" (')

    def test_ddl_failure_wrapped(self, pg):
        sink, pool, conn, cursor, _ = pg
        cursor.execute.side_effect = psycopg2.ProgrammingError("type \"BLOB\" does not exist")

        with pytest.raises(SinkError, match="DDL failed for table shop_users"):
            sink.create_table_if_absent("shop_users", [("_id", "BLOB")], ["_id"])

        conn.rollback.assert_called_once()
        pool.putconn.assert_called_once_with(conn)


class TestCopySession:
    COMMAND = 'COPY "t1" ("id","tags") FROM STDIN'

    def test_lines_buffered_until_end(self):
        conn, cursor = _mock_connection()
        captured = {}

        def copy_expert(sql, file):
            captured["sql"] = sql
            captured["data"] = file.read()
            cursor.rowcount = 2

        cursor.copy_expert.side_effect = copy_expert
        session = PostgresCopySession(conn, self.COMMAND)

        session.write_line("7\ta,b\n")
        session.write_line("8\t\\N\n")
        cursor.copy_expert.assert_not_called()
        assert session.lines_written == 2

        session.end()

        assert captured == {"sql": self.COMMAND, "data": "7\ta,b\n8\t\\N\n"}
        assert session.check_result() == 2

    def test_server_error_reported_by_check_result(self):
        conn, cursor = _mock_connection()
        error = psycopg2.DataError("invalid input syntax for type integer")
        cursor.copy_expert.side_effect = error
        session = PostgresCopySession(conn, self.COMMAND)
        session.write_line("x\n")

        session.end()

        with pytest.raises(psycopg2.DataError) as exc_info:
            session.check_result()
        assert exc_info.value is error

    def test_write_after_end_rejected(self):
        conn, _ = _mock_connection()
        session = PostgresCopySession(conn, self.COMMAND)
        session.end()

        with pytest.raises(BulkLoadError, match="ended"):
            session.write_line("x\n")
        with pytest.raises(BulkLoadError, match="ended"):
            session.end()

    def test_check_result_before_end_rejected(self):
        conn, _ = _mock_connection()
        session = PostgresCopySession(conn, self.COMMAND)

        with pytest.raises(BulkLoadError, match="not been ended"):
            session.check_result()

    def test_abort_discards_buffer(self):
        conn, cursor = _mock_connection()
        session = PostgresCopySession(conn, self.COMMAND)
        session.write_line("x\n")

        session.abort()

        cursor.copy_expert.assert_not_called()
        with pytest.raises(BulkLoadError, match="aborted"):
            session.write_line("y\n")

    def test_session_through_sink(self, pg):
        sink, _, conn, cursor, _ = pg

        with sink.synchronize() as sink_conn:
            session = sink_conn.begin_bulk_copy(self.COMMAND)
            session.write_line("1\ta\n")
            session.end()

        cursor.copy_expert.assert_called_once()
        assert cursor.copy_expert.call_args.args[0] == self.COMMAND
        conn.commit.assert_called_once()


class TestRaiseError:
    def test_wraps_driver_error_with_pgcode(self, pg):
        sink = pg[0]

        class UniqueViolation(Exception):
            pgcode = "23505"

        error = UniqueViolation("duplicate key value")

        with pytest.raises(BulkLoadError) as exc_info:
            sink.raise_error(error)

        assert str(exc_info.value) == (
            "Bulk copy failed: duplicate key value (pgcode=23505)"
        )
        assert exc_info.value.__cause__ is error

    def test_chains_plain_errors(self, pg):
        sink = pg[0]
        error = RuntimeError("connection reset")

        with pytest.raises(BulkLoadError, match="connection reset") as exc_info:
            sink.raise_error(error)

        assert exc_info.value.__cause__ is error
        assert "pgcode" not in str(exc_info.value)
