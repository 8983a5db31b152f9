from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    func,
)

from app.db.base import Base


class LoanRecord(Base):
    __tablename__ = "loans"
    __table_args__ = (
        CheckConstraint("loan_amount > 0", name="ck_loans_amount_positive"),
        CheckConstraint("interest_rate >= 0", name="ck_loans_rate_nonneg"),
        CheckConstraint("loan_period_months >= 1", name="ck_loans_period_positive"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'disbursed')",
            name="ck_loans_status",
        ),
        Index("ix_loans_status", "status"),
        Index("ix_loans_created_at", "created_at"),
    )

    id = Column(String(36), primary_key=True)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    id_number = Column(String(50), nullable=True)
    contact_number = Column(String(50), nullable=True)
    physical_address = Column(String(500), nullable=True)
    postal_address = Column(String(500), nullable=True)

    kin_name = Column(String(200), nullable=True)
    kin_relationship = Column(String(100), nullable=True)
    kin_address = Column(String(500), nullable=True)

    married_in_community = Column(Boolean, nullable=False, default=False)
    spouse_name = Column(String(200), nullable=True)
    spouse_id_number = Column(String(50), nullable=True)

    loan_amount = Column(Float, nullable=False)
    interest_rate = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)
    loan_period_months = Column(Integer, nullable=False)
    loan_date = Column(Date, nullable=True)
    payment_date = Column(Date, nullable=True)

    bank_name = Column(String(100), nullable=True)
    account_number = Column(String(50), nullable=True)
    branch = Column(String(100), nullable=True)

    repayment_methods = Column(JSON, nullable=False, default=list)
    terms_accepted = Column(JSON, nullable=False, default=list)

    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    checked_by = Column(String(36), nullable=True)
    checked_at = Column(DateTime(timezone=True), nullable=True)
    checker_comments = Column(Text, nullable=True)
    disbursed_by = Column(String(36), nullable=True)
    disbursed_at = Column(DateTime(timezone=True), nullable=True)
    disbursement_reference = Column(String(100), nullable=True)
