from sqlalchemy import CheckConstraint, Column, Date, DateTime, Float, ForeignKey, Index, String, Text, func

from app.db.base import Base


class RepaymentRecord(Base):
    __tablename__ = "repayments"
    __table_args__ = (
        CheckConstraint("amount_paid > 0", name="ck_repayments_amount_positive"),
        Index("ix_repayments_loan_id", "loan_id"),
    )

    id = Column(String(36), primary_key=True)
    loan_id = Column(String(36), ForeignKey("loans.id", ondelete="RESTRICT"), nullable=False)
    payment_date = Column(Date, nullable=False)
    amount_paid = Column(Float, nullable=False)
    payment_method = Column(String(50), nullable=True)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    recorded_by = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
