import json
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoanStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DISBURSED = "disbursed"


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def resulting_status(self) -> LoanStatus:
        return LoanStatus.APPROVED if self is ReviewAction.APPROVE else LoanStatus.REJECTED


def _split_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return []
        if cleaned.startswith("["):
            try:
                return json.loads(cleaned)
            except json.JSONDecodeError:
                return value
        return [part.strip() for part in cleaned.split(",") if part.strip()]
    return value


class LoanApplicationCreate(BaseModel):
    """Public intake payload.

    Numbers are accepted as raw text and parsed by the lifecycle service, so a
    malformed amount surfaces as a workflow validation error rather than a
    schema error. ``repayment_methods`` and ``terms_accepted`` also accept the
    comma-separated / JSON-encoded strings posted by HTML forms.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    id_number: str | None = Field(default=None, max_length=50)
    contact_number: str | None = Field(default=None, max_length=50)
    physical_address: str | None = Field(default=None, max_length=500)
    postal_address: str | None = Field(default=None, max_length=500)

    kin_name: str | None = Field(default=None, max_length=200)
    kin_relationship: str | None = Field(default=None, max_length=100)
    kin_address: str | None = Field(default=None, max_length=500)

    married_in_community: bool = False
    spouse_name: str | None = Field(default=None, max_length=200)
    spouse_id_number: str | None = Field(default=None, max_length=50)

    loan_amount: str | float | int | None = None
    interest_rate: str | float | int | None = None
    loan_period_months: str | int | None = None
    loan_date: date | None = None
    payment_date: date | None = None

    bank_name: str | None = Field(default=None, max_length=100)
    account_number: str | None = Field(default=None, max_length=50)
    branch: str | None = Field(default=None, max_length=100)

    repayment_methods: list[str] = Field(default_factory=list)
    terms_accepted: list[str] = Field(default_factory=list)

    @field_validator("married_in_community", mode="before")
    @classmethod
    def _coerce_yes_no(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() in {"yes", "y", "true", "1"}
        if value is None:
            return False
        return value

    @field_validator("repayment_methods", "terms_accepted", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> Any:
        return _split_list(value)


class Loan(BaseModel):
    model_config = ConfigDict(use_enum_values=True, from_attributes=True)

    id: str

    first_name: str | None = None
    last_name: str | None = None
    id_number: str | None = None
    contact_number: str | None = None
    physical_address: str | None = None
    postal_address: str | None = None

    kin_name: str | None = None
    kin_relationship: str | None = None
    kin_address: str | None = None

    married_in_community: bool = False
    spouse_name: str | None = None
    spouse_id_number: str | None = None

    loan_amount: float
    interest_rate: float
    total_amount: float
    loan_period_months: int
    loan_date: date | None = None
    payment_date: date | None = None

    bank_name: str | None = None
    account_number: str | None = None
    branch: str | None = None

    repayment_methods: list[str] = Field(default_factory=list)
    terms_accepted: list[str] = Field(default_factory=list)

    status: LoanStatus = LoanStatus.PENDING
    created_at: datetime
    updated_at: datetime

    checked_by: str | None = None
    checked_at: datetime | None = None
    checker_comments: str | None = None
    disbursed_by: str | None = None
    disbursed_at: datetime | None = None
    disbursement_reference: str | None = None


class LoanSubmitResponse(BaseModel):
    reference: str
    status: LoanStatus = LoanStatus.PENDING
    total_amount: float


class LoanReviewRequest(BaseModel):
    action: str
    comments: str | None = None


class LoanDisburseRequest(BaseModel):
    reference_number: str | None = Field(default=None, max_length=100)


class LoanStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    disbursed: int = 0
    total_amount: float = 0.0
