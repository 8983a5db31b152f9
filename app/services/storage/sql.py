from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy import select, text, update
from sqlalchemy.exc import DataError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import StorageUnavailable, ValidationError
from app.models import LoanRecord, RepaymentRecord, StaffUserRecord
from app.services.storage.adapter import (
    LOANS,
    REPAYMENTS,
    STAFF_USERS,
    Record,
    bounded,
    check_index,
    check_table,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TABLE_MODELS = {
    LOANS: LoanRecord,
    REPAYMENTS: RepaymentRecord,
    STAFF_USERS: StaffUserRecord,
}


def _to_record(instance: Any) -> Record:
    return {column.key: getattr(instance, column.key) for column in instance.__table__.columns}


class SqlRecordStore:
    """Durable store backed by SQLAlchemy async sessions.

    ``conditional_update`` is one ``UPDATE ... WHERE id = :id AND <expected>``
    statement; the database applies it atomically and the affected row count
    reports whether the condition held.
    """

    backend = "sql"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._session_factory = session_factory
        self.timeout_seconds = timeout_seconds

    async def _run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def _in_session() -> T:
            async with self._session_factory() as session:
                return await work(session)

        try:
            return await bounded(_in_session(), timeout=self.timeout_seconds, operation=operation)
        except (OperationalError, InterfaceError, PoolTimeoutError) as exc:
            logger.warning("Storage %s failed: %s", operation, exc.__class__.__name__)
            raise StorageUnavailable(
                f"Storage unavailable during {operation}",
                details={"operation": operation},
            ) from exc
        except DataError as exc:
            raise ValidationError(
                "Value does not fit the stored field",
                details={"operation": operation},
            ) from exc

    async def put(self, table: str, record: Record) -> None:
        check_table(table)
        model = TABLE_MODELS[table]

        async def _work(session: AsyncSession) -> None:
            await session.merge(model(**record))
            await session.commit()

        await self._run("put", _work)

    async def get(self, table: str, record_id: str) -> Record | None:
        check_table(table)
        model = TABLE_MODELS[table]

        async def _work(session: AsyncSession) -> Record | None:
            instance = await session.get(model, record_id)
            return _to_record(instance) if instance is not None else None

        return await self._run("get", _work)

    async def query_by_index(self, table: str, index: str, key: Any) -> list[Record]:
        check_index(table, index)
        model = TABLE_MODELS[table]
        stmt = select(model).where(getattr(model, index) == key)

        async def _work(session: AsyncSession) -> list[Record]:
            result = await session.execute(stmt)
            return [_to_record(instance) for instance in result.scalars().all()]

        return await self._run("query_by_index", _work)

    async def scan_all(self, table: str) -> list[Record]:
        check_table(table)
        model = TABLE_MODELS[table]
        stmt = select(model)

        async def _work(session: AsyncSession) -> list[Record]:
            result = await session.execute(stmt)
            return [_to_record(instance) for instance in result.scalars().all()]

        return await self._run("scan_all", _work)

    async def conditional_update(
        self,
        table: str,
        record_id: str,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> bool:
        check_table(table)
        model = TABLE_MODELS[table]
        conditions = [model.id == record_id]
        conditions.extend(getattr(model, field) == value for field, value in expected.items())
        stmt = (
            update(model)
            .where(*conditions)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )

        async def _work(session: AsyncSession) -> bool:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount == 1

        return await self._run("conditional_update", _work)

    async def ping(self) -> None:
        async def _work(session: AsyncSession) -> None:
            await session.execute(text("SELECT 1"))

        await self._run("ping", _work)
