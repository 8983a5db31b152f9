from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from app.api.v1 import api_router
from app.core.errors import register_exception_handlers
from app.core.health import APP_VERSION
from app.core.limiter import limiter
from app.core.logging import configure_logging
from app.core.settings import settings
from app.events import register_event_handlers
from app.middlewares.request_context import RequestContextMiddleware
from app.services.storage.adapter import RecordStore


def create_app(record_store: Optional[RecordStore] = None) -> FastAPI:
    """Build the API. Without ``record_store`` the configured backend is created at startup."""
    configure_logging()
    is_production = settings.environment.lower() == "production"
    app = FastAPI(
        title="Loan Desk API",
        version=APP_VERSION,
        docs_url=None if is_production else "/docs",
        redoc_url=None,
    )
    app.state.record_store = record_store
    app.state.limiter = limiter

    register_exception_handlers(app)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    app.include_router(api_router, prefix="/api/v1")
    register_event_handlers(app)
    return app


app = create_app()
