import logging

from fastapi import FastAPI

from app.core.settings import settings
from app.services.staff_users import seed_default_staff
from app.services.storage.service import build_record_store

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI) -> None:
    @app.on_event("startup")
    async def on_startup() -> None:
        if getattr(app.state, "record_store", None) is None:
            app.state.record_store = build_record_store()
        store = app.state.record_store
        logger.info("Application startup (storage backend: %s)", store.backend)
        if settings.seed_staff_on_startup:
            created = await seed_default_staff(store, settings.seed_staff_password)
            logger.info("Seeded %d staff users", len(created))

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Application shutdown")
