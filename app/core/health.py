from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from app.core.errors import StorageUnavailable
from app.core.settings import settings
from app.services.storage.adapter import RecordStore

APP_VERSION = "0.1.0"


async def _check_storage(store: RecordStore) -> dict[str, str]:
    try:
        await store.ping()
    except StorageUnavailable as exc:
        return {"status": "error", "backend": store.backend, "error": exc.message}
    return {"status": "ok", "backend": store.backend}


async def _check_api() -> dict[str, str]:
    return {"status": "ok", "version": APP_VERSION}


def _overall_status(checks: dict[str, dict[str, Any]]) -> tuple[str, bool]:
    ready = all(check.get("status") == "ok" for check in checks.values())
    return ("ok" if ready else "degraded", ready)


async def live_payload() -> dict[str, str]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def ready_payload(store: RecordStore) -> dict[str, Any]:
    checks = {
        "api": await _check_api(),
        "storage": await _check_storage(store),
    }
    overall, ready = _overall_status(checks)
    return {
        "status": overall,
        "ready": ready,
        "environment": settings.environment,
        "version": APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
