import asyncio
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import DataError, OperationalError

from conftest import FakeResult
from app.core.errors import StorageUnavailable, ValidationError
from app.models import LoanRecord, RepaymentRecord
from app.services.storage.adapter import LOANS, REPAYMENTS, RecordStore
from app.services.storage.memory import InMemoryRecordStore
from app.services.storage.service import build_record_store
from app.services.storage.sql import SqlRecordStore


def _loan_record(record_id: str = "loan-1", status: str = "approved") -> dict:
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    return {
        "id": record_id,
        "first_name": "Thandi",
        "loan_amount": 1000.0,
        "interest_rate": 10.0,
        "total_amount": 1100.0,
        "loan_period_months": 6,
        "repayment_methods": ["eft"],
        "terms_accepted": [],
        "status": status,
        "created_at": now,
        "updated_at": now,
    }


def test_build_record_store_selects_backend():
    store = build_record_store("memory")
    assert isinstance(store, InMemoryRecordStore)
    assert isinstance(store, RecordStore)
    with pytest.raises(ValueError):
        build_record_store("dynamo")


# ---------------------------------------------------------------------------
# InMemoryRecordStore
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_memory_put_and_get_return_snapshots(store):
    record = _loan_record()
    await store.put(LOANS, record)
    record["status"] = "tampered"

    fetched = await store.get(LOANS, "loan-1")
    assert fetched["status"] == "approved"
    fetched["repayment_methods"].append("cash")

    again = await store.get(LOANS, "loan-1")
    assert again["repayment_methods"] == ["eft"]
    assert await store.get(LOANS, "missing") is None


@pytest.mark.asyncio
async def test_memory_query_by_index_and_scan(store):
    await store.put(LOANS, _loan_record("a", "pending"))
    await store.put(LOANS, _loan_record("b", "approved"))
    await store.put(LOANS, _loan_record("c", "pending"))

    pending = await store.query_by_index(LOANS, "status", "pending")
    assert sorted(record["id"] for record in pending) == ["a", "c"]
    assert len(await store.scan_all(LOANS)) == 3
    assert await store.scan_all(REPAYMENTS) == []


@pytest.mark.asyncio
async def test_memory_rejects_unknown_table_and_index(store):
    with pytest.raises(ValueError):
        await store.scan_all("customers")
    with pytest.raises(ValueError):
        await store.query_by_index(LOANS, "first_name", "Thandi")
    with pytest.raises(ValueError):
        await store.put(LOANS, {"status": "pending"})


@pytest.mark.asyncio
async def test_memory_conditional_update(store):
    await store.put(LOANS, _loan_record())

    assert await store.conditional_update(LOANS, "loan-1", {"status": "pending"}, {"status": "approved"}) is False
    assert await store.conditional_update(LOANS, "missing", {"status": "approved"}, {"status": "disbursed"}) is False
    assert (
        await store.conditional_update(
            LOANS, "loan-1", {"status": "approved"}, {"status": "disbursed", "disbursement_reference": "REF1"}
        )
        is True
    )

    stored = await store.get(LOANS, "loan-1")
    assert stored["status"] == "disbursed"
    assert stored["disbursement_reference"] == "REF1"
    assert stored["first_name"] == "Thandi"


@pytest.mark.asyncio
async def test_memory_conditional_update_has_single_winner(store):
    await store.put(LOANS, _loan_record())

    outcomes = await asyncio.gather(
        *(
            store.conditional_update(
                LOANS, "loan-1", {"status": "approved"}, {"status": "disbursed", "disbursement_reference": f"REF{n}"}
            )
            for n in range(10)
        )
    )

    assert outcomes.count(True) == 1


@pytest.mark.asyncio
async def test_memory_operations_time_out_when_lock_is_held():
    store = InMemoryRecordStore(timeout_seconds=0.05)
    await store._lock.acquire()
    try:
        with pytest.raises(StorageUnavailable) as exc:
            await store.get(LOANS, "loan-1")
        assert exc.value.details["operation"] == "get"
    finally:
        store._lock.release()

    await store.ping()


# ---------------------------------------------------------------------------
# SqlRecordStore (fake session)
# ---------------------------------------------------------------------------


def _sql_store(session, timeout: float = 1.0) -> SqlRecordStore:
    return SqlRecordStore(lambda: session, timeout_seconds=timeout)


@pytest.mark.asyncio
async def test_sql_put_merges_model_and_commits(fake_session):
    store = _sql_store(fake_session)

    await store.put(LOANS, _loan_record())

    assert len(fake_session.merged) == 1
    merged = fake_session.merged[0]
    assert isinstance(merged, LoanRecord)
    assert merged.status == "approved"
    assert fake_session.commits == 1


@pytest.mark.asyncio
async def test_sql_get_returns_plain_record(fake_session):
    instance = RepaymentRecord(
        id="rep-1",
        loan_id="loan-1",
        payment_date=date(2025, 3, 1),
        amount_paid=500.0,
        recorded_by="user-1",
        created_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
    )
    fake_session.on_get(RepaymentRecord, "rep-1", instance)
    store = _sql_store(fake_session)

    record = await store.get(REPAYMENTS, "rep-1")

    assert record["id"] == "rep-1"
    assert record["amount_paid"] == 500.0
    assert record["payment_date"] == date(2025, 3, 1)
    assert await store.get(REPAYMENTS, "missing") is None


@pytest.mark.asyncio
async def test_sql_query_by_index_filters_on_column(fake_session):
    instance = LoanRecord(**_loan_record("loan-9", "pending"))
    fake_session.on_execute(lambda stmt: FakeResult(items=[instance]))
    store = _sql_store(fake_session)

    records = await store.query_by_index(LOANS, "status", "pending")

    assert [record["id"] for record in records] == ["loan-9"]
    compiled = str(fake_session.executed[0])
    assert "loans.status" in compiled
    assert "WHERE" in compiled


@pytest.mark.asyncio
async def test_sql_conditional_update_reports_row_count(fake_session):
    outcomes = iter([FakeResult(rowcount=1), FakeResult(rowcount=0)])
    fake_session.on_execute(lambda stmt: next(outcomes))
    store = _sql_store(fake_session)

    first = await store.conditional_update(LOANS, "loan-1", {"status": "approved"}, {"status": "disbursed"})
    second = await store.conditional_update(LOANS, "loan-1", {"status": "approved"}, {"status": "disbursed"})

    assert first is True
    assert second is False
    compiled = str(fake_session.executed[0])
    assert compiled.startswith("UPDATE loans")
    assert "loans.id" in compiled
    assert "loans.status" in compiled
    assert fake_session.commits == 2


@pytest.mark.asyncio
async def test_sql_driver_errors_become_storage_unavailable(fake_session):
    def _fail(stmt):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    fake_session.on_execute(_fail)
    store = _sql_store(fake_session)

    with pytest.raises(StorageUnavailable) as exc:
        await store.ping()
    assert exc.value.details["operation"] == "ping"


@pytest.mark.asyncio
async def test_sql_slow_calls_time_out(fake_session):
    async def _slow_commit():
        await asyncio.sleep(1)

    fake_session.commit = _slow_commit
    store = _sql_store(fake_session, timeout=0.05)

    with pytest.raises(StorageUnavailable):
        await store.put(LOANS, _loan_record())


@pytest.mark.asyncio
async def test_sql_oversized_values_become_validation_errors(fake_session):
    async def _reject_commit():
        raise DataError("INSERT INTO loans", {}, Exception("value too long for type character varying(100)"))

    fake_session.commit = _reject_commit
    store = _sql_store(fake_session)

    with pytest.raises(ValidationError) as exc:
        await store.put(LOANS, _loan_record())
    assert exc.value.details["operation"] == "put"
