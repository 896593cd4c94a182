"""
PostgreSQL-specific SQL dialect implementation.

Provides PostgreSQL syntax for table creation, table removal and the
`COPY ... FROM STDIN` command that opens a bulk-copy session.
"""

from typing import Sequence, Tuple

from ..core.identifier import quote_column_list, quote_identifier


class PostgreSQLDialect:
    """PostgreSQL SQL dialect implementation."""

    name = "postgresql"

    def quote(self, identifier: str) -> str:
        """Quote an identifier using PostgreSQL syntax (double quotes)."""
        return quote_identifier(identifier)

    def build_create_table(
        self,
        table: str,
        column_defs: Sequence[Tuple[str, str]],
        primary_key: Sequence[str],
        if_not_exists: bool = False,
    ) -> str:
        """
        Build a CREATE TABLE statement.

        Args:
            table: Table name
            column_defs: Ordered (column name, SQL type) pairs
            primary_key: Primary key column names
            if_not_exists: Emit IF NOT EXISTS so re-running is a no-op

        Returns:
            CREATE TABLE SQL statement
        """
        if not column_defs:
            raise ValueError(f"Table {table!r} needs at least one column")

        exists_clause = "IF NOT EXISTS " if if_not_exists else ""
        lines = [f"  {self.quote(name)} {sql_type}" for name, sql_type in column_defs]
        if primary_key:
            lines.append(f"  PRIMARY KEY ({quote_column_list(primary_key)})")

        body = ",\n".join(lines)
        return f"CREATE TABLE {exists_clause}{self.quote(table)} (\n{body}\n)"

    def build_drop_table(self, table: str) -> str:
        """Build DROP TABLE IF EXISTS for clobbering an existing table."""
        return f"DROP TABLE IF EXISTS {self.quote(table)}"

    def build_copy_from_stdin(self, table: str, columns: Sequence[str]) -> str:
        """
        Build the command that opens a text-format bulk-copy session.

        Examples:
            >>> PostgreSQLDialect().build_copy_from_stdin("t1", ["id", "tags"])
            'COPY "t1" ("id","tags") FROM STDIN'
        """
        return f"COPY {self.quote(table)} ({quote_column_list(columns)}) FROM STDIN"
