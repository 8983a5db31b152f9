import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from app import models  # noqa: F401  (registers tables on Base.metadata)
from app.db.base import Base
from app.db.url import normalize_database_url

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def database_url() -> str:
    """DATABASE_URL wins over alembic.ini; both are pointed at the psycopg async driver."""
    raw = os.getenv("DATABASE_URL", "").strip() or config.get_main_option("sqlalchemy.url") or ""
    return normalize_database_url(raw)


def _run(**configure_kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **configure_kwargs)
    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection: Connection) -> None:
    _run(connection=connection)


async def run_async_migrations() -> None:
    engine = create_async_engine(database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_with_connection)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _run(url=database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(run_async_migrations())
