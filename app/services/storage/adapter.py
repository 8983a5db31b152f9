from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Protocol, TypeVar, runtime_checkable

from app.core.errors import StorageUnavailable

T = TypeVar("T")

Record = dict[str, Any]

LOANS = "loans"
REPAYMENTS = "repayments"
STAFF_USERS = "staff_users"

# table -> fields that may be used with query_by_index
TABLE_INDEXES: dict[str, frozenset[str]] = {
    LOANS: frozenset({"status"}),
    REPAYMENTS: frozenset({"loan_id"}),
    STAFF_USERS: frozenset({"username"}),
}


@runtime_checkable
class RecordStore(Protocol):
    """Persistence contract shared by every storage backend.

    Records are plain dicts keyed by ``id``. Implementations must make
    ``conditional_update`` atomic: the comparison against ``expected`` and the
    write of ``changes`` happen as one step, so two racing callers cannot both
    observe success.
    """

    backend: str

    async def put(self, table: str, record: Record) -> None:
        """Insert or replace a record."""

    async def get(self, table: str, record_id: str) -> Record | None:
        """Return a snapshot of the record, or None when absent."""

    async def query_by_index(self, table: str, index: str, key: Any) -> list[Record]:
        """Return snapshots of records whose ``index`` field equals ``key``."""

    async def scan_all(self, table: str) -> list[Record]:
        """Return snapshots of every record in the table."""

    async def conditional_update(
        self,
        table: str,
        record_id: str,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> bool:
        """Apply ``changes`` only if every ``expected`` field matches; report success."""

    async def ping(self) -> None:
        """Raise StorageUnavailable when the backend cannot serve requests."""


def check_table(table: str) -> None:
    if table not in TABLE_INDEXES:
        raise ValueError(f"Unknown table: {table}")


def check_index(table: str, index: str) -> None:
    check_table(table)
    if index not in TABLE_INDEXES[table]:
        raise ValueError(f"Unknown index {index!r} on table {table!r}")


async def bounded(awaitable: Awaitable[T], *, timeout: float, operation: str) -> T:
    """Await a storage call, failing (never retrying) once ``timeout`` elapses."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise StorageUnavailable(
            f"Storage timed out during {operation}",
            details={"operation": operation, "timeout_seconds": timeout},
        ) from exc
