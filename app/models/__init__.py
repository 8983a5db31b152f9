from app.models.loan import LoanRecord
from app.models.repayment import RepaymentRecord
from app.models.staff_user import StaffUserRecord

__all__ = [
    "LoanRecord",
    "RepaymentRecord",
    "StaffUserRecord",
]
