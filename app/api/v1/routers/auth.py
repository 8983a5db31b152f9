from fastapi import APIRouter, Depends, Request

from app.api import deps
from app.core.limiter import limiter
from app.core.response_envelope import Envelope, envelope
from app.core.security import create_access_token
from app.core.settings import settings
from app.schemas.auth import (
    LoginRequest,
    Principal,
    PrincipalOut,
    StaffUserOut,
    TokenResponse,
    VerifyResponse,
)
from app.services import staff_users
from app.services.storage.adapter import RecordStore

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Envelope[TokenResponse])
@limiter.limit(lambda: f"{settings.rate_limit_per_minute}/minute")
async def login(
    credentials: LoginRequest,
    request: Request,
    store: RecordStore = Depends(deps.get_record_store),
) -> dict:
    user = await staff_users.authenticate(store, credentials.username, credentials.password)
    token = create_access_token(user.id, username=user.username, role=user.role)
    payload = TokenResponse(
        access_token=token,
        expires_in=settings.access_token_expire_minutes * 60,
        user=user,
    )
    return envelope(payload, message="Login successful")


@router.get("/verify", response_model=Envelope[VerifyResponse])
async def verify(principal: Principal = Depends(deps.get_current_principal)) -> dict:
    user = PrincipalOut(id=principal.id, username=principal.username, role=principal.role)
    return envelope(VerifyResponse(valid=True, user=user))


@router.get("/me", response_model=Envelope[StaffUserOut])
async def me(
    principal: Principal = Depends(deps.get_current_principal),
    store: RecordStore = Depends(deps.get_record_store),
) -> dict:
    return envelope(await staff_users.get_staff_user(store, principal.id))
