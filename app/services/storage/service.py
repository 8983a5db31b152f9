from app.core.settings import settings
from app.services.storage.adapter import RecordStore
from app.services.storage.memory import InMemoryRecordStore


def build_record_store(backend: str | None = None) -> RecordStore:
    provider = backend or settings.storage_backend
    timeout = settings.storage_timeout_seconds

    if provider == "sql":
        # Lazy import so the memory backend does not need a database driver
        from app.db.session import get_session_factory
        from app.services.storage.sql import SqlRecordStore

        return SqlRecordStore(get_session_factory(), timeout_seconds=timeout)

    if provider == "memory":
        return InMemoryRecordStore(timeout_seconds=timeout)

    raise ValueError(f"Unsupported storage backend: {provider}")
