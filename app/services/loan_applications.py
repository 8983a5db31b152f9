from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from app.core.errors import InvalidState, NotFound, PreconditionFailed, ValidationError
from app.core.permissions import Action
from app.core.settings import settings
from app.schemas.auth import Principal
from app.schemas.loan import (
    Loan,
    LoanApplicationCreate,
    LoanStats,
    LoanStatus,
    ReviewAction,
)
from app.services.audit import record_audit_event
from app.services.identity import require_role
from app.services.loan_dashboard import summarize_loans
from app.services.storage.adapter import LOANS, RecordStore

logger = logging.getLogger(__name__)

SPOUSE_FIELDS = ("spouse_name", "spouse_id_number")
SEARCH_FIELDS = ("first_name", "last_name", "id_number", "contact_number")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _parse_number(value: Any) -> float | None:
    if isinstance(value, bool) or _is_blank(value):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _field_error(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}


def _missing_fields(payload: LoanApplicationCreate) -> list[str]:
    missing = [
        field
        for field in settings.required_applicant_fields
        if _is_blank(getattr(payload, field, None))
    ]
    if payload.married_in_community:
        missing.extend(field for field in SPOUSE_FIELDS if _is_blank(getattr(payload, field)))
    return missing


def _normalize_methods(methods: list[str]) -> list[str]:
    normalized: list[str] = []
    for method in methods:
        value = str(method).strip().lower().replace(" ", "_").replace("-", "_")
        if value and value not in normalized:
            normalized.append(value)
    return normalized


def _distinct_terms(terms: list[str]) -> list[str]:
    distinct: list[str] = []
    for term in terms:
        value = str(term).strip()
        if value and value not in distinct:
            distinct.append(value)
    return distinct


def _validate_application(payload: LoanApplicationCreate) -> tuple[float, float, int, list[str], list[str]]:
    errors: list[dict[str, str]] = []

    missing = _missing_fields(payload)
    errors.extend(_field_error(field, "This field is required") for field in missing)

    principal = _parse_number(payload.loan_amount)
    if principal is None:
        errors.append(_field_error("loan_amount", "Loan amount must be a number"))
    elif principal <= 0:
        errors.append(_field_error("loan_amount", "Loan amount must be greater than zero"))

    rate = _parse_number(payload.interest_rate)
    if rate is None:
        errors.append(_field_error("interest_rate", "Interest rate must be a number"))
    elif rate < 0:
        errors.append(_field_error("interest_rate", "Interest rate cannot be negative"))

    period_value = _parse_number(payload.loan_period_months)
    period = int(period_value) if period_value is not None else None
    if period is None:
        errors.append(_field_error("loan_period_months", "Loan period must be a number"))
    elif period < 1:
        errors.append(_field_error("loan_period_months", "Loan period must be at least one month"))

    methods = _normalize_methods(payload.repayment_methods)
    if not methods:
        errors.append(_field_error("repayment_methods", "Select at least one repayment method"))
    else:
        allowed = set(settings.allowed_repayment_methods)
        unknown = [method for method in methods if method not in allowed]
        if unknown:
            errors.append(
                _field_error("repayment_methods", f"Unsupported repayment method: {', '.join(unknown)}")
            )

    terms = _distinct_terms(payload.terms_accepted)
    if len(terms) < settings.required_terms_count:
        errors.append(
            _field_error(
                "terms_accepted",
                f"All {settings.required_terms_count} terms and conditions must be accepted",
            )
        )

    if errors:
        message = "Missing required fields" if missing else errors[0]["message"]
        raise ValidationError(message, details={"errors": errors, "missing_fields": missing})

    return principal, rate, period, methods, terms


def total_repayable(principal: float, rate: float) -> float:
    """Flat interest: principal plus ``rate`` percent of principal, not compounded."""
    return principal + principal * rate / 100


async def submit_application(
    store: RecordStore,
    payload: LoanApplicationCreate,
    *,
    now: datetime | None = None,
) -> Loan:
    principal, rate, period, methods, terms = _validate_application(payload)
    timestamp = now or _utcnow()

    data = payload.model_dump(
        exclude={"loan_amount", "interest_rate", "loan_period_months", "repayment_methods", "terms_accepted"}
    )
    if not payload.married_in_community:
        for field in SPOUSE_FIELDS:
            data[field] = None

    loan = Loan(
        **data,
        id=str(uuid4()),
        loan_amount=principal,
        interest_rate=rate,
        loan_period_months=period,
        total_amount=total_repayable(principal, rate),
        repayment_methods=methods,
        terms_accepted=terms,
        status=LoanStatus.PENDING,
        created_at=timestamp,
        updated_at=timestamp,
    )
    await store.put(LOANS, loan.model_dump())

    record_audit_event(
        actor_id=None,
        action="loan.submitted",
        resource_type="loan",
        resource_id=loan.id,
        new_value={"status": loan.status, "total_amount": loan.total_amount},
    )
    logger.info("Loan application %s submitted", loan.id)
    return loan


def _parse_status(status: str | LoanStatus | None) -> LoanStatus | None:
    if status is None or (isinstance(status, str) and not status.strip()):
        return None
    try:
        return LoanStatus(status.strip().lower() if isinstance(status, str) else status)
    except ValueError as exc:
        raise ValidationError(
            "Invalid status filter",
            details={"status": status, "allowed": [item.value for item in LoanStatus]},
        ) from exc


def _resolve_limit(limit: int | None) -> int:
    if limit is None:
        return settings.default_list_limit
    if limit < 1:
        raise ValidationError("limit must be at least 1", details={"limit": limit})
    return min(limit, settings.max_list_limit)


def _matches_search(loan: Loan, term: str) -> bool:
    return any(term in (getattr(loan, field) or "").lower() for field in SEARCH_FIELDS)


async def list_loans(
    store: RecordStore,
    *,
    status: str | LoanStatus | None = None,
    search: str | None = None,
    limit: int | None = None,
) -> list[Loan]:
    """Newest first; ``limit`` applies after filtering."""
    status_filter = _parse_status(status)
    resolved_limit = _resolve_limit(limit)

    if status_filter is not None:
        records = await store.query_by_index(LOANS, "status", status_filter.value)
    else:
        records = await store.scan_all(LOANS)
    loans = [Loan.model_validate(record) for record in records]

    term = (search or "").strip().lower()
    if term:
        loans = [loan for loan in loans if _matches_search(loan, term)]

    loans.sort(key=lambda loan: loan.created_at, reverse=True)
    return loans[:resolved_limit]


async def get_loan(store: RecordStore, loan_id: str) -> Loan:
    record = await store.get(LOANS, loan_id)
    if record is None:
        raise NotFound("Loan not found", details={"loan_id": loan_id})
    return Loan.model_validate(record)


def _parse_review_action(action: str | ReviewAction | None) -> ReviewAction:
    value = action.value if isinstance(action, ReviewAction) else str(action or "").strip().lower()
    try:
        return ReviewAction(value)
    except ValueError as exc:
        raise ValidationError(
            "Invalid action",
            details={"action": action, "allowed": [item.value for item in ReviewAction]},
        ) from exc


async def review_loan(
    store: RecordStore,
    principal: Principal,
    loan_id: str,
    action: str | ReviewAction,
    comments: str | None = None,
    *,
    now: datetime | None = None,
) -> Loan:
    """Approve or reject a pending loan.

    The write is conditional on the loan still being pending, so two
    reviewers racing on the same loan cannot both succeed.
    """
    require_role(principal, Action.LOAN_REVIEW)
    review_action = _parse_review_action(action)
    loan = await get_loan(store, loan_id)

    if loan.status != LoanStatus.PENDING.value:
        raise InvalidState(
            f"Loan is already {loan.status}",
            details={"loan_id": loan_id, "status": loan.status},
        )

    timestamp = now or _utcnow()
    changes = {
        "status": review_action.resulting_status.value,
        "checked_by": principal.id,
        "checked_at": timestamp,
        "checker_comments": comments,
        "updated_at": timestamp,
    }
    applied = await store.conditional_update(
        LOANS, loan_id, {"status": LoanStatus.PENDING.value}, changes
    )
    if not applied:
        raise PreconditionFailed(
            "Loan was reviewed concurrently; reload and retry",
            details={"loan_id": loan_id, "expected_status": LoanStatus.PENDING.value},
        )

    record_audit_event(
        actor_id=principal.id,
        action="loan.reviewed",
        resource_type="loan",
        resource_id=loan_id,
        old_value={"status": loan.status},
        new_value={"status": changes["status"], "checker_comments": comments},
    )
    return loan.model_copy(update=changes)


async def disburse_loan(
    store: RecordStore,
    principal: Principal,
    loan_id: str,
    reference_number: str | None,
    *,
    now: datetime | None = None,
) -> Loan:
    require_role(principal, Action.LOAN_DISBURSE)
    loan = await get_loan(store, loan_id)

    reference = (reference_number or "").strip()
    if not reference:
        raise ValidationError(
            "Disbursement reference number is required",
            details={"errors": [_field_error("reference_number", "This field is required")]},
        )

    timestamp = now or _utcnow()
    changes = {
        "status": LoanStatus.DISBURSED.value,
        "disbursed_by": principal.id,
        "disbursed_at": timestamp,
        "disbursement_reference": reference,
        "updated_at": timestamp,
    }
    # No pre-check on the snapshot: the conditional write is the only gate.
    applied = await store.conditional_update(
        LOANS, loan_id, {"status": LoanStatus.APPROVED.value}, changes
    )
    if not applied:
        raise PreconditionFailed(
            "Loan must be approved before disbursement",
            details={"loan_id": loan_id, "expected_status": LoanStatus.APPROVED.value},
        )

    record_audit_event(
        actor_id=principal.id,
        action="loan.disbursed",
        resource_type="loan",
        resource_id=loan_id,
        old_value={"status": LoanStatus.APPROVED.value},
        new_value={"status": LoanStatus.DISBURSED.value, "disbursement_reference": reference},
    )
    return loan.model_copy(update=changes)


async def loan_stats(store: RecordStore) -> LoanStats:
    records = await store.scan_all(LOANS)
    return summarize_loans(Loan.model_validate(record) for record in records)
