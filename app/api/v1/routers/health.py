from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api import deps
from app.core.health import live_payload, ready_payload
from app.core.limiter import limiter
from app.core.response_envelope import envelope
from app.services.storage.adapter import RecordStore

router = APIRouter(tags=["health"])


@router.get("/health/live", summary="Service liveness check")
@limiter.exempt
async def health_live() -> dict:
    return envelope(await live_payload())


@router.get("/health/ready", summary="Service readiness check")
@limiter.exempt
async def health_ready(store: RecordStore = Depends(deps.get_record_store)) -> JSONResponse:
    payload = await ready_payload(store)
    if payload["ready"]:
        return JSONResponse(status_code=200, content=envelope(payload))
    body = envelope(payload, message="Service degraded")
    body["code"] = "degraded"
    return JSONResponse(status_code=503, content=body)
