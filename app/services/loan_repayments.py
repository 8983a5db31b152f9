from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Iterable
from uuid import uuid4

from app.core.errors import InvalidState, ValidationError
from app.core.permissions import Action
from app.schemas.auth import Principal
from app.schemas.loan import Loan, LoanStatus
from app.schemas.repayment import (
    LoanRepaymentsResponse,
    Repayment,
    RepaymentCreateRequest,
    RepaymentStats,
    RepaymentWithApplicant,
)
from app.services.audit import record_audit_event
from app.services.identity import require_role
from app.services.loan_applications import get_loan
from app.services.loan_dashboard import balance_for_loan, summarize_repayments
from app.services.storage.adapter import LOANS, REPAYMENTS, RecordStore

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("loan_id", "payment_date", "amount_paid")


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_payment_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValidationError(
            "Payment date must be an ISO date (YYYY-MM-DD)",
            details={"field": "payment_date", "value": value},
        ) from exc


def _parse_amount(value: str | float | int) -> float:
    try:
        amount = float(value) if not isinstance(value, bool) else math.nan
    except (TypeError, ValueError):
        amount = math.nan
    if not math.isfinite(amount):
        raise ValidationError("Amount paid must be a number", details={"field": "amount_paid", "value": value})
    if amount <= 0:
        raise ValidationError(
            "Amount paid must be greater than zero",
            details={"field": "amount_paid", "value": value},
        )
    return amount


def _newest_first(repayments: Iterable[Repayment]) -> list:
    return sorted(
        repayments,
        key=lambda item: (item.payment_date, item.created_at),
        reverse=True,
    )


async def record_repayment(
    store: RecordStore,
    principal: Principal,
    payload: RepaymentCreateRequest,
    *,
    now: datetime | None = None,
) -> Repayment:
    """Append a payment against a disbursed loan. Entries are never edited afterwards."""
    require_role(principal, Action.REPAYMENT_RECORD)

    missing = [field for field in REQUIRED_FIELDS if _blank(getattr(payload, field))]
    if missing:
        raise ValidationError("Missing required fields", details={"missing_fields": missing})
    payment_date = _parse_payment_date(payload.payment_date)
    amount = _parse_amount(payload.amount_paid)

    loan = await get_loan(store, payload.loan_id)
    if loan.status != LoanStatus.DISBURSED.value:
        raise InvalidState(
            "Loan must be disbursed before recording payments",
            details={"loan_id": loan.id, "status": loan.status},
        )

    repayment = Repayment(
        id=str(uuid4()),
        loan_id=loan.id,
        payment_date=payment_date,
        amount_paid=amount,
        payment_method=payload.payment_method or None,
        reference_number=payload.reference_number or None,
        notes=payload.notes or None,
        recorded_by=principal.id,
        created_at=now or datetime.now(timezone.utc),
    )
    await store.put(REPAYMENTS, repayment.model_dump())

    record_audit_event(
        actor_id=principal.id,
        action="repayment.recorded",
        resource_type="repayment",
        resource_id=repayment.id,
        new_value={"loan_id": loan.id, "amount_paid": amount, "payment_date": payment_date},
    )
    logger.info("Repayment %s recorded against loan %s", repayment.id, loan.id)
    return repayment


async def list_repayments(store: RecordStore) -> list[RepaymentWithApplicant]:
    """All repayments, newest payment date first, with the applicant's name attached."""
    repayments = [Repayment.model_validate(record) for record in await store.scan_all(REPAYMENTS)]

    applicants: dict[str, Loan | None] = {}
    for repayment in repayments:
        if repayment.loan_id not in applicants:
            record = await store.get(LOANS, repayment.loan_id)
            applicants[repayment.loan_id] = Loan.model_validate(record) if record else None

    enriched = []
    for repayment in repayments:
        loan = applicants.get(repayment.loan_id)
        enriched.append(
            RepaymentWithApplicant(
                **repayment.model_dump(),
                first_name=loan.first_name if loan else None,
                last_name=loan.last_name if loan else None,
            )
        )
    return _newest_first(enriched)


async def list_repayments_for_loan(store: RecordStore, loan_id: str) -> LoanRepaymentsResponse:
    loan = await get_loan(store, loan_id)
    records = await store.query_by_index(REPAYMENTS, "loan_id", loan_id)
    repayments = _newest_first(Repayment.model_validate(record) for record in records)
    return LoanRepaymentsResponse(
        summary=balance_for_loan(loan, repayments),
        repayments=repayments,
    )


async def repayment_stats(store: RecordStore) -> RepaymentStats:
    disbursed = await store.query_by_index(LOANS, "status", LoanStatus.DISBURSED.value)
    repayments = await store.scan_all(REPAYMENTS)
    return summarize_repayments(
        (Loan.model_validate(record) for record in disbursed),
        (Repayment.model_validate(record) for record in repayments),
    )
