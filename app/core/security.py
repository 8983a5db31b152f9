from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.settings import settings


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    min_len = settings.default_password_min_length
    if len(password) < min_len:
        raise ValueError(f"Password too short; minimum {min_len} characters")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


class JWTKeyError(RuntimeError):
    pass


def _uses_shared_secret() -> bool:
    return settings.jwt_algorithm.upper().startswith("HS")


def _resolve_key(inline: str | None, path: str | None, label: str) -> str:
    """HS* algorithms sign with SECRET_KEY; asymmetric ones need PEM text inline or on disk."""
    if _uses_shared_secret():
        return settings.secret_key
    if inline:
        return inline.replace("\\n", "\n")
    if path:
        return Path(path).read_text(encoding="utf-8")
    raise JWTKeyError(f"JWT {label} key not configured")


@lru_cache(maxsize=1)
def _load_private_key() -> str:
    return _resolve_key(settings.jwt_private_key, settings.jwt_private_key_path, "private")


@lru_cache(maxsize=1)
def _load_public_key() -> str:
    return _resolve_key(settings.jwt_public_key, settings.jwt_public_key_path, "public")


def create_access_token(
    subject: str,
    *,
    username: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode: dict[str, Any] = {
        "sub": subject,
        "username": username,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": expire,
    }
    private_key = _load_private_key()
    return jwt.encode(to_encode, private_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, expected_type: str | None = None) -> dict[str, Any]:
    public_key = _load_public_key()
    try:
        payload = jwt.decode(token, public_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    if expected_type and payload.get("type") != expected_type:
        raise ValueError(f"Unexpected token type: {payload.get('type')}")
    return payload
