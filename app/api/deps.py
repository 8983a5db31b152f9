from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from app.core.context import set_actor_id
from app.schemas.auth import Principal
from app.services.identity import ensure_active, resolve_principal
from app.services.storage.adapter import RecordStore
from app.services.storage.service import build_record_store


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_record_store(request: Request) -> RecordStore:
    store = getattr(request.app.state, "record_store", None)
    if store is None:
        store = build_record_store()
        request.app.state.record_store = store
    return store


async def get_current_principal(
    token: Optional[str] = Depends(oauth2_scheme),
    store: RecordStore = Depends(get_record_store),
) -> Principal:
    principal = resolve_principal(token)
    await ensure_active(store, principal)
    set_actor_id(principal.id)
    return principal
