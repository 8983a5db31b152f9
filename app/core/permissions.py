from enum import Enum
from typing import Iterable, List


class Role(str, Enum):
    ADMIN = "admin"
    MAKER = "maker"
    CHECKER = "checker"
    ACCOUNTANT = "accountant"

    @classmethod
    def list_all(cls) -> List[str]:
        return [role.value for role in cls]


class Action(str, Enum):
    LOAN_REVIEW = "loan.review"
    LOAN_DISBURSE = "loan.disburse"
    REPAYMENT_RECORD = "repayment.record"


ACTION_ROLES: dict[Action, frozenset[Role]] = {
    Action.LOAN_REVIEW: frozenset({Role.CHECKER, Role.ADMIN}),
    Action.LOAN_DISBURSE: frozenset({Role.ACCOUNTANT, Role.ADMIN}),
    Action.REPAYMENT_RECORD: frozenset({Role.ACCOUNTANT, Role.ADMIN}),
}


def roles_for(action: Action) -> frozenset[Role]:
    return ACTION_ROLES[action]


def is_allowed(role: Role | str, action: Action) -> bool:
    try:
        resolved = Role(role)
    except ValueError:
        return False
    return resolved in ACTION_ROLES[action]


def describe(roles: Iterable[Role]) -> str:
    """Render roles in a stable order for error messages."""
    return ", ".join(sorted(role.value for role in roles))
