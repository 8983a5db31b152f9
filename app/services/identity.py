from __future__ import annotations

from app.core.errors import Forbidden, Unauthorized
from app.core.permissions import Action, Role, describe, is_allowed, roles_for
from app.core.security import decode_token
from app.schemas.auth import Principal
from app.services.storage.adapter import STAFF_USERS, RecordStore


def resolve_principal(credential: str | None) -> Principal:
    """Turn a bearer credential into the caller's identity, or raise Unauthorized."""
    if not credential:
        raise Unauthorized("No token provided")
    try:
        payload = decode_token(credential, expected_type="access")
    except ValueError as exc:
        raise Unauthorized(str(exc)) from exc

    subject = payload.get("sub")
    username = payload.get("username")
    if not subject or not username:
        raise Unauthorized("Invalid token")
    try:
        role = Role(payload.get("role"))
    except ValueError as exc:
        raise Unauthorized("Invalid token") from exc
    return Principal(id=str(subject), username=str(username), role=role)


async def ensure_active(store: RecordStore, principal: Principal) -> None:
    """Re-check the account behind a token; a disabled account is locked out before its token expires."""
    record = await store.get(STAFF_USERS, principal.id)
    if record is None:
        raise Unauthorized("User not found")
    if not record.get("is_active", True):
        raise Forbidden("Account is disabled")


def require_role(principal: Principal, action: Action) -> None:
    if not is_allowed(principal.role, action):
        raise Forbidden(
            "Insufficient permissions",
            details={"action": action.value, "allowed_roles": describe(roles_for(action))},
        )
