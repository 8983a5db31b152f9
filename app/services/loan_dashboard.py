from __future__ import annotations

from collections import Counter
from typing import Iterable

from app.schemas.loan import Loan, LoanStats, LoanStatus
from app.schemas.repayment import LoanBalanceSummary, Repayment, RepaymentStats


def summarize_loans(loans: Iterable[Loan]) -> LoanStats:
    """Count loans per status; ``total_amount`` spans every status."""
    status_counts: Counter[str] = Counter()
    total_amount = 0.0
    for loan in loans:
        status_counts[loan.status] += 1
        total_amount += loan.total_amount or 0.0
    return LoanStats(
        total=sum(status_counts.values()),
        pending=status_counts.get(LoanStatus.PENDING.value, 0),
        approved=status_counts.get(LoanStatus.APPROVED.value, 0),
        rejected=status_counts.get(LoanStatus.REJECTED.value, 0),
        disbursed=status_counts.get(LoanStatus.DISBURSED.value, 0),
        total_amount=total_amount,
    )


def balance_for_loan(loan: Loan, repayments: Iterable[Repayment]) -> LoanBalanceSummary:
    total_paid = sum(repayment.amount_paid for repayment in repayments if repayment.loan_id == loan.id)
    return LoanBalanceSummary(
        loan_amount=loan.total_amount,
        total_paid=total_paid,
        balance=loan.total_amount - total_paid,
    )


def summarize_repayments(
    disbursed_loans: Iterable[Loan],
    repayments: Iterable[Repayment],
) -> RepaymentStats:
    """Portfolio totals.

    ``total_loaned`` covers disbursed loans only while ``total_collected``
    covers every repayment on record.
    """
    loans = list(disbursed_loans)
    total_loaned = sum(loan.total_amount or 0.0 for loan in loans)
    total_collected = sum(repayment.amount_paid for repayment in repayments)
    return RepaymentStats(
        total_loaned=total_loaned,
        total_collected=total_collected,
        outstanding_balance=total_loaned - total_collected,
        active_loan_count=len(loans),
    )
