from fastapi import APIRouter, Depends, status

from app.api import deps
from app.core.response_envelope import Envelope, envelope
from app.schemas.auth import Principal
from app.schemas.repayment import (
    LoanRepaymentsResponse,
    RepaymentCreateRequest,
    RepaymentListResponse,
    RepaymentRecordResponse,
    RepaymentStats,
)
from app.services import loan_repayments
from app.services.storage.adapter import RecordStore

router = APIRouter(prefix="/repayments", tags=["repayments"])


@router.post("", response_model=Envelope[RepaymentRecordResponse], status_code=status.HTTP_201_CREATED)
async def record_repayment(
    payload: RepaymentCreateRequest,
    store: RecordStore = Depends(deps.get_record_store),
    principal: Principal = Depends(deps.get_current_principal),
) -> dict:
    repayment = await loan_repayments.record_repayment(store, principal, payload)
    return envelope(
        RepaymentRecordResponse(repayment_id=repayment.id),
        status.HTTP_201_CREATED,
        message="Payment recorded successfully",
    )


@router.get("", response_model=Envelope[RepaymentListResponse])
async def list_repayments(
    store: RecordStore = Depends(deps.get_record_store),
    principal: Principal = Depends(deps.get_current_principal),
) -> dict:
    repayments = await loan_repayments.list_repayments(store)
    return envelope(RepaymentListResponse(repayments=repayments))


@router.get("/stats/summary", response_model=Envelope[RepaymentStats])
async def repayment_stats(
    store: RecordStore = Depends(deps.get_record_store),
    principal: Principal = Depends(deps.get_current_principal),
) -> dict:
    return envelope(await loan_repayments.repayment_stats(store))


@router.get("/loan/{loan_id}", response_model=Envelope[LoanRepaymentsResponse])
async def list_loan_repayments(
    loan_id: str,
    store: RecordStore = Depends(deps.get_record_store),
    principal: Principal = Depends(deps.get_current_principal),
) -> dict:
    return envelope(await loan_repayments.list_repayments_for_loan(store, loan_id))
