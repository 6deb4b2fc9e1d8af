# agenda/db/base.py

from __future__ import annotations

import contextlib
import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    async_sessionmaker,
    AsyncSession,
    create_async_engine,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from agenda.config import settings

log = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


# --- Engine & Session factory ---
if settings.DATABASE_URL.startswith("sqlite+aiosqlite://"):
    # One connection per session; in-process SQLite serializes writers itself.
    log.info("Using SQLite database (aiosqlite) for ENVIRONMENT=%s.", settings.ENVIRONMENT)
    engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool, echo=False)
elif settings.DATABASE_URL.startswith("postgresql+asyncpg://"):
    log.info("Using ASYNC PostgreSQL database, isolation=%s", settings.DB_ISOLATION_LEVEL)
    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=(settings.ENVIRONMENT == "dev"),
        pool_pre_ping=True,
        isolation_level=settings.DB_ISOLATION_LEVEL,
    )
else:
    log.error("DATABASE_URL uses an unsupported driver.")
    raise ValueError("DATABASE_URL must use the 'asyncpg' or 'aiosqlite' driver.")

async_session_factory = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


async def get_async_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: creates and yields an async session, handling commit/rollback.

    Write operations of the scheduling service commit on their own; the
    commit here closes out whatever is still pending (user creation at login).
    """
    session = async_session_factory()
    log.debug("get_async_db_session: session %s created", id(session))
    try:
        yield session
        await session.commit()
        log.debug("get_async_db_session: session %s committed", id(session))
    except SQLAlchemyError:
        log.exception("get_async_db_session: SQLAlchemyError in session %s, rolling back", id(session))
        await session.rollback()
        raise
    except Exception:
        log.debug("get_async_db_session: exception in session %s scope, rolling back", id(session))
        await session.rollback()
        raise
    finally:
        await session.close()


@contextlib.asynccontextmanager
async def async_session_context() -> AsyncGenerator[AsyncSession, None]:
    session: AsyncSession = async_session_factory()
    log.debug("Entering async session context %s", id(session))
    try:
        yield session
        await session.commit()
    except Exception:
        log.exception("Rolling back session %s from context due to exception", id(session))
        await session.rollback()
        raise
    finally:
        await session.close()


def _import_models() -> None:
    # Registers every mapped table on Base.metadata.
    import agenda.core.users.models  # noqa: F401
    import agenda.core.calendars.models  # noqa: F401
    import agenda.core.reminders.models  # noqa: F401


async def create_db_and_tables() -> None:
    _import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("Database tables created.")


async def drop_db_and_tables() -> None:
    _import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    log.info("Database tables dropped.")


__all__ = [
    "Base", "engine", "async_session_factory", "AsyncSession",
    "get_async_db_session", "async_session_context",
    "create_db_and_tables", "drop_db_and_tables",
]
