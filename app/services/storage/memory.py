from __future__ import annotations

import asyncio
import copy
from typing import Any

from app.services.storage.adapter import (
    TABLE_INDEXES,
    Record,
    bounded,
    check_index,
    check_table,
)


class InMemoryRecordStore:
    """Volatile in-process store for development and tests.

    Every access runs under a single ``asyncio.Lock``; the compare and the
    write of ``conditional_update`` therefore cannot interleave with another
    coroutine. Records are deep-copied on the way in and out.
    """

    backend = "memory"

    def __init__(self, *, timeout_seconds: float = 5.0) -> None:
        self.timeout_seconds = timeout_seconds
        self._tables: dict[str, dict[str, Record]] = {name: {} for name in TABLE_INDEXES}
        self._lock = asyncio.Lock()

    async def _acquire(self, operation: str) -> None:
        await bounded(self._lock.acquire(), timeout=self.timeout_seconds, operation=operation)

    async def put(self, table: str, record: Record) -> None:
        check_table(table)
        if not record.get("id"):
            raise ValueError("Record requires an id")
        await self._acquire("put")
        try:
            self._tables[table][record["id"]] = copy.deepcopy(record)
        finally:
            self._lock.release()

    async def get(self, table: str, record_id: str) -> Record | None:
        check_table(table)
        await self._acquire("get")
        try:
            record = self._tables[table].get(record_id)
            return copy.deepcopy(record) if record is not None else None
        finally:
            self._lock.release()

    async def query_by_index(self, table: str, index: str, key: Any) -> list[Record]:
        check_index(table, index)
        await self._acquire("query_by_index")
        try:
            return [
                copy.deepcopy(record)
                for record in self._tables[table].values()
                if record.get(index) == key
            ]
        finally:
            self._lock.release()

    async def scan_all(self, table: str) -> list[Record]:
        check_table(table)
        await self._acquire("scan_all")
        try:
            return [copy.deepcopy(record) for record in self._tables[table].values()]
        finally:
            self._lock.release()

    async def conditional_update(
        self,
        table: str,
        record_id: str,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> bool:
        check_table(table)
        await self._acquire("conditional_update")
        try:
            record = self._tables[table].get(record_id)
            if record is None:
                return False
            if any(record.get(field) != value for field, value in expected.items()):
                return False
            record.update(copy.deepcopy(changes))
            return True
        finally:
            self._lock.release()

    async def ping(self) -> None:
        await self._acquire("ping")
        self._lock.release()
