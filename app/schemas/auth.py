from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.core.permissions import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Caller identity resolved from a credential for the span of one request."""

    id: str
    username: str
    role: Role


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: "StaffUserOut"


class LoginRequest(BaseModel):
    username: str
    password: str


class PrincipalOut(BaseModel):
    id: str
    username: str
    role: Role


class VerifyResponse(BaseModel):
    valid: bool = True
    user: PrincipalOut


class StaffUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: str
    username: str
    full_name: str
    email: Optional[str] = None
    role: Role
    is_active: bool
    created_at: Optional[datetime] = None


TokenResponse.model_rebuild()
