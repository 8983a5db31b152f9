from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api import deps
from app.core.response_envelope import Envelope, envelope
from app.schemas.auth import Principal
from app.schemas.loan import (
    Loan,
    LoanApplicationCreate,
    LoanDisburseRequest,
    LoanReviewRequest,
    LoanStats,
    LoanSubmitResponse,
)
from app.services import loan_applications
from app.services.storage.adapter import RecordStore

router = APIRouter(prefix="/loans", tags=["loans"])


@router.post("/apply", response_model=Envelope[LoanSubmitResponse], status_code=status.HTTP_201_CREATED)
async def apply_for_loan(
    payload: LoanApplicationCreate,
    store: RecordStore = Depends(deps.get_record_store),
) -> dict:
    loan = await loan_applications.submit_application(store, payload)
    result = LoanSubmitResponse(reference=loan.id, status=loan.status, total_amount=loan.total_amount)
    return envelope(result, status.HTTP_201_CREATED, message="Loan application submitted successfully")


@router.get("", response_model=Envelope[list[Loan]])
async def list_loans(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    search: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None),
    store: RecordStore = Depends(deps.get_record_store),
    principal: Principal = Depends(deps.get_current_principal),
) -> dict:
    loans = await loan_applications.list_loans(store, status=status_filter, search=search, limit=limit)
    return envelope(loans)


# Declared before "/{loan_id}" so the literal path wins.
@router.get("/stats/summary", response_model=Envelope[LoanStats])
async def loan_stats(
    store: RecordStore = Depends(deps.get_record_store),
    principal: Principal = Depends(deps.get_current_principal),
) -> dict:
    return envelope(await loan_applications.loan_stats(store))


@router.get("/{loan_id}", response_model=Envelope[Loan])
async def get_loan(
    loan_id: str,
    store: RecordStore = Depends(deps.get_record_store),
    principal: Principal = Depends(deps.get_current_principal),
) -> dict:
    return envelope(await loan_applications.get_loan(store, loan_id))


@router.post("/{loan_id}/review", response_model=Envelope[Loan])
async def review_loan(
    loan_id: str,
    payload: LoanReviewRequest,
    store: RecordStore = Depends(deps.get_record_store),
    principal: Principal = Depends(deps.get_current_principal),
) -> dict:
    loan = await loan_applications.review_loan(store, principal, loan_id, payload.action, payload.comments)
    return envelope(loan, message=f"Loan {loan.status} successfully")


@router.post("/{loan_id}/disburse", response_model=Envelope[Loan])
async def disburse_loan(
    loan_id: str,
    payload: LoanDisburseRequest,
    store: RecordStore = Depends(deps.get_record_store),
    principal: Principal = Depends(deps.get_current_principal),
) -> dict:
    loan = await loan_applications.disburse_loan(store, principal, loan_id, payload.reference_number)
    return envelope(loan, message="Loan disbursed successfully")
