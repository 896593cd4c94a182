"""Pytest configuration: shared collection maps, a recording sink and the
opt-in PostgreSQL suite."""

from __future__ import annotations

import os
import uuid
from contextlib import contextmanager
from typing import Generator
from urllib.parse import urlparse, urlunparse

import pytest

from doc_relay.config import get_settings
from doc_relay.exceptions import BulkLoadError
from doc_relay.infrastructure.schema import SchemaCatalog

E2E_OPTION = "run_e2e_tests"
E2E_MARK = "e2e_suite"
E2E_ENV = "RUN_E2E_TESTS"


def _env_enabled(name: str) -> bool:
    """Return True when the opt-in environment flag is set to '1'."""
    return os.getenv(name) == "1"


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register the CLI flag mirroring RUN_E2E_TESTS."""
    parser.addoption(
        "--run-e2e-tests",
        action="store_true",
        dest=E2E_OPTION,
        default=_env_enabled(E2E_ENV),
        help="Run the PostgreSQL end-to-end suite "
        "(set RUN_E2E_TESTS=1 or pass --run-e2e-tests).",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Skip the opt-in suite unless its flag is enabled."""
    if config.getoption(E2E_OPTION):
        return
    skip_e2e = pytest.mark.skip(
        reason="Set RUN_E2E_TESTS=1 or pass --run-e2e-tests to run the E2E suite."
    )
    for item in items:
        if E2E_MARK in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================================
# Collection maps
# ============================================================================


@pytest.fixture
def collection_map() -> dict:
    """Raw collection map covering plain, nested and overflow columns."""
    return {
        "shop": {
            "orders": {
                "columns": [
                    {"_id": "TEXT"},
                    {"total": "NUMERIC"},
                    {"customer.name": "TEXT"},
                    {"paid": "BOOLEAN"},
                ],
                "meta": {"table": "orders", "extra_props": True},
            },
            "users": {
                "columns": [{"_id": "TEXT"}, {"email": "TEXT"}],
                "meta": {"table": "shop_users"},
            },
        },
        "blog": {
            "posts": {
                "columns": [{"_id": "INTEGER"}, {"tags": "TEXT"}],
                "meta": {"table": "posts", "extra_props": False},
            },
        },
    }


@pytest.fixture
def catalog(collection_map: dict) -> SchemaCatalog:
    return SchemaCatalog(collection_map)


# ============================================================================
# Recording sink
# ============================================================================


class RecordingCopySession:
    def __init__(self, command: str, error: Exception | None = None):
        self.command = command
        self.lines: list[str] = []
        self.ended = False
        self.aborted = False
        self._error = error

    def write_line(self, text: str) -> None:
        self.lines.append(text)

    def end(self) -> None:
        self.ended = True

    def check_result(self) -> int:
        if self._error is not None:
            raise self._error
        return len(self.lines)

    def abort(self) -> None:
        self.aborted = True


class RecordingSink:
    """In-memory sink that records DDL calls and copy sessions."""

    def __init__(self, copy_error: Exception | None = None):
        self.copy_error = copy_error
        self.sessions: list[RecordingCopySession] = []
        self.tables: dict[str, tuple[list, list]] = {}
        self.ddl_calls: list[tuple[str, str]] = []
        self.acquired = 0
        self.released = 0

    @contextmanager
    def synchronize(self):
        self.acquired += 1
        try:
            yield self
        finally:
            self.released += 1

    def begin_bulk_copy(self, command: str) -> RecordingCopySession:
        session = RecordingCopySession(command, self.copy_error)
        self.sessions.append(session)
        return session

    def create_table_if_absent(self, name, column_defs, primary_key) -> None:
        self.ddl_calls.append(("if_absent", name))
        self.tables.setdefault(name, (list(column_defs), list(primary_key)))

    def create_table_clobber(self, name, column_defs, primary_key) -> None:
        self.ddl_calls.append(("clobber", name))
        self.tables[name] = (list(column_defs), list(primary_key))

    def raise_error(self, exc):
        raise BulkLoadError(f"Bulk copy failed: {exc}") from exc


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_sink() -> RecordingSink:
    return RecordingSink(copy_error=RuntimeError("duplicate key value"))


# ============================================================================
# E2E: live PostgreSQL
# ============================================================================


def _validate_test_database(dsn: str) -> bool:
    """Refuse to run destructive tests against a non-test database name."""
    import re

    from sqlalchemy.engine.url import make_url

    if os.getenv("DRL_SKIP_DB_VALIDATION") == "1":
        return True

    db_name = make_url(dsn).database
    if not db_name or not re.search(
        r"(test|tmp|dev|local|sandbox)", db_name, re.IGNORECASE
    ):
        raise RuntimeError(
            f"Refusing to run tests against non-test database: {db_name}. "
            "Test databases must contain one of: test, tmp, dev, local, sandbox. "
            "Override with DRL_SKIP_DB_VALIDATION=1 (DANGEROUS)."
        )
    return True


def _resolve_postgres_dsn() -> str:
    database_url = os.environ.get("DATABASE_URL") or os.environ.get(
        "DRL_TEST_DATABASE_URI"
    )
    if not database_url or not database_url.startswith("postgres"):
        pytest.skip(
            "PostgreSQL DATABASE_URL/DRL_TEST_DATABASE_URI must be set for "
            "postgres-backed tests"
        )
    return database_url


@pytest.fixture
def postgres_dsn() -> Generator[str, None, None]:
    """Create an ephemeral database for the test and drop it afterwards."""
    import psycopg2
    from psycopg2 import sql

    base_dsn = _resolve_postgres_dsn()
    parsed = urlparse(base_dsn)
    base_db = parsed.path.lstrip("/") or "postgres"
    temp_db = f"{base_db}_test_{uuid.uuid4().hex[:8]}"
    admin_dsn = urlunparse(parsed._replace(path="/postgres"))
    temp_dsn = urlunparse(parsed._replace(path=f"/{temp_db}"))
    _validate_test_database(temp_dsn)

    conn = psycopg2.connect(admin_dsn)
    conn.autocommit = True
    try:
        with conn.cursor() as cursor:
            cursor.execute(
                sql.SQL("CREATE DATABASE {} TEMPLATE template0").format(
                    sql.Identifier(temp_db)
                )
            )
    finally:
        conn.close()

    try:
        yield temp_dsn
    finally:
        conn = psycopg2.connect(admin_dsn)
        conn.autocommit = True
        try:
            with conn.cursor() as cursor:
                cursor.execute(
                    """
                    SELECT pg_terminate_backend(pid)
                    FROM pg_stat_activity
                    WHERE datname = %s AND pid <> pg_backend_pid();
                    """,
                    (temp_db,),
                )
                cursor.execute(
                    sql.SQL("DROP DATABASE IF EXISTS {}").format(
                        sql.Identifier(temp_db)
                    )
                )
        finally:
            conn.close()
