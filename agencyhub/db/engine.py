"""SQLAlchemy engines and session factories.

When DATABASE_URL is set this module exposes:

- an asyncpg engine, used by the readiness ping and the lifespan hook
- a psycopg2 engine with a session factory, used by the ``Pg*Repo``
  repositories (their interface is synchronous, like the in-memory ones)

Without it every export is None and the service runs on the in-memory
repositories in ``agencyhub.repos``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from agencyhub.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for every table in ``agencyhub.db.tables``."""


def sync_database_url(url: str) -> str:
    """Same database, psycopg2 driver (repositories and migrations)."""
    return url.replace("postgresql+asyncpg://", "postgresql+psycopg2://", 1)


if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
    )
    sync_engine = create_engine(
        sync_database_url(SETTINGS.database_url),
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
    )
    session_factory: sessionmaker[Session] | None = sessionmaker(
        sync_engine, expire_on_commit=False
    )
else:
    engine = None
    sync_engine = None
    session_factory = None


async def ping_database() -> bool:
    if engine is None:
        return False
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


@asynccontextmanager
async def lifespan_db():
    if engine is None:
        logger.info("No DATABASE_URL configured, using in-memory repositories")
        yield
        return

    logger.info("Database engine created: %s", engine.url.render_as_string(hide_password=True))
    yield
    await engine.dispose()
    if sync_engine is not None:
        sync_engine.dispose()
    logger.info("Database engines disposed")
