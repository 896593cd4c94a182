from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import NoReturn, Optional, Protocol, Sequence, Tuple

from doc_relay.exceptions import BulkLoadError

ColumnDefs = Sequence[Tuple[str, str]]


class CopySession(Protocol):
    """An open bulk-copy session on a sink connection."""

    def write_line(self, text: str) -> None: ...

    def end(self) -> None: ...

    def check_result(self) -> Optional[int]: ...

    def abort(self) -> None: ...


class SinkConnection(Protocol):
    """A connection held exclusively for the duration of a copy."""

    def begin_bulk_copy(self, command: str) -> CopySession: ...


class RelationalSink(Protocol):
    """Operations the loader and DDL generation need from the relational sink."""

    def synchronize(self) -> AbstractContextManager[SinkConnection]: ...

    def create_table_if_absent(
        self, name: str, column_defs: ColumnDefs, primary_key: Sequence[str]
    ) -> None: ...

    def create_table_clobber(
        self, name: str, column_defs: ColumnDefs, primary_key: Sequence[str]
    ) -> None: ...

    def raise_error(self, exc: BaseException) -> NoReturn: ...


@dataclass
class CopyResult:
    """Structured response for BulkLoader.copy_data."""

    table: str
    namespace: str
    rows: int
    duration_ms: float
    execution_id: str
    server_rows: Optional[int] = None


__all__ = [
    "BulkLoadError",
    "ColumnDefs",
    "CopyResult",
    "CopySession",
    "RelationalSink",
    "SinkConnection",
]
