from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class Repayment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    loan_id: str
    payment_date: date
    amount_paid: float
    payment_method: str | None = None
    reference_number: str | None = None
    notes: str | None = None
    recorded_by: str
    created_at: datetime


class RepaymentCreateRequest(BaseModel):
    """Payment as keyed by an accountant; required fields are checked by the ledger."""

    model_config = ConfigDict(str_strip_whitespace=True)

    loan_id: str | None = None
    payment_date: str | date | None = None
    amount_paid: str | float | int | None = None
    payment_method: str | None = Field(default=None, max_length=50)
    reference_number: str | None = Field(default=None, max_length=100)
    notes: str | None = None


class RepaymentRecordResponse(BaseModel):
    repayment_id: str


class RepaymentWithApplicant(Repayment):
    first_name: str | None = None
    last_name: str | None = None


class RepaymentListResponse(BaseModel):
    repayments: list[RepaymentWithApplicant]


class LoanBalanceSummary(BaseModel):
    loan_amount: float
    total_paid: float
    balance: float


class LoanRepaymentsResponse(BaseModel):
    summary: LoanBalanceSummary
    repayments: list[Repayment]


class RepaymentStats(BaseModel):
    total_loaned: float = 0.0
    total_collected: float = 0.0
    outstanding_balance: float = 0.0
    active_loan_count: int = 0
