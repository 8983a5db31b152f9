from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional
from uuid import uuid4

from app.core.errors import Forbidden, NotFound, Unauthorized, ValidationError
from app.core.permissions import Role
from app.core.security import get_password_hash, pwd_context, verify_password
from app.schemas.auth import StaffUserOut
from app.services.storage.adapter import STAFF_USERS, Record, RecordStore

logger = logging.getLogger(__name__)

_DUMMY_PASSWORD = "loan-desk-unknown-user"

DEFAULT_STAFF: list[tuple[str, str, Role]] = [
    ("admin", "System Administrator", Role.ADMIN),
    ("maker1", "Loan Officer", Role.MAKER),
    ("checker1", "Loan Verifier", Role.CHECKER),
    ("accountant1", "Senior Accountant", Role.ACCOUNTANT),
]


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    """Hash compared against when the username is unknown so both paths cost one bcrypt check."""
    return pwd_context.hash(_DUMMY_PASSWORD)


def constant_time_verify(hashed_password: Optional[str], password: str) -> bool:
    if hashed_password:
        return verify_password(password, hashed_password)
    verify_password(password, _dummy_hash())
    return False


def _normalize_username(username: str) -> str:
    return username.strip().lower()


async def get_by_username(store: RecordStore, username: str) -> Optional[Record]:
    matches = await store.query_by_index(STAFF_USERS, "username", _normalize_username(username))
    return matches[0] if matches else None


async def get_staff_user(store: RecordStore, user_id: str) -> StaffUserOut:
    record = await store.get(STAFF_USERS, user_id)
    if record is None:
        raise NotFound("User not found", details={"user_id": user_id})
    return StaffUserOut.model_validate(record)


async def create_staff_user(
    store: RecordStore,
    *,
    username: str,
    password: str,
    full_name: str,
    role: Role | str,
    email: Optional[str] = None,
    is_active: bool = True,
) -> StaffUserOut:
    normalized = _normalize_username(username)
    if not normalized:
        raise ValidationError("Username is required")
    if await get_by_username(store, normalized) is not None:
        raise ValidationError("Username already exists", details={"username": normalized})
    try:
        role_value = Role(role).value
    except ValueError as exc:
        raise ValidationError("Invalid role", details={"role": role, "allowed": Role.list_all()}) from exc
    try:
        hashed = get_password_hash(password)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    record = {
        "id": str(uuid4()),
        "username": normalized,
        "full_name": full_name,
        "email": email,
        "role": role_value,
        "is_active": is_active,
        "hashed_password": hashed,
        "created_at": datetime.now(timezone.utc),
    }
    await store.put(STAFF_USERS, record)
    logger.info("Staff user %s created with role %s", normalized, role_value)
    return StaffUserOut.model_validate(record)


async def authenticate(store: RecordStore, username: str, password: str) -> StaffUserOut:
    record = await get_by_username(store, username or "")
    hashed = record.get("hashed_password") if record else None
    if not constant_time_verify(hashed, password or ""):
        raise Unauthorized("Invalid username or password")
    if not record.get("is_active", True):
        raise Forbidden("Account is disabled")
    return StaffUserOut.model_validate(record)


async def seed_default_staff(store: RecordStore, password: str) -> list[StaffUserOut]:
    """Create one account per role; usernames that already exist are left alone."""
    created: list[StaffUserOut] = []
    for username, full_name, role in DEFAULT_STAFF:
        if await get_by_username(store, username) is not None:
            logger.info("Staff user %s already exists; skipping", username)
            continue
        created.append(
            await create_staff_user(
                store,
                username=username,
                password=password,
                full_name=full_name,
                role=role,
            )
        )
    return created
