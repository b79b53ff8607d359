import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import asyncpg
from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from splitbill.core.config import settings


class UncachedStatementConnection(asyncpg.Connection):
    """asyncpg connection with unique statement names (pgBouncer transaction mode)."""

    def _get_unique_id(self, prefix: str) -> str:
        return f"__splitbill_{prefix}_{uuid.uuid4()}__"


def to_async_url(url: str) -> str:
    """Rewrite plain postgres URLs to the asyncpg dialect."""
    for scheme in ("postgresql://", "postgres://"):
        if url.startswith(scheme):
            return "postgresql+asyncpg://" + url[len(scheme):]
    return url


engine = create_async_engine(
    to_async_url(settings.database_url),
    echo=False,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_recycle=300,
    pool_pre_ping=True,
    connect_args={
        "statement_cache_size": 0,
        "connection_class": UncachedStatementConnection,
    },
)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    })


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session dependency."""
    async with async_session_factory() as session:
        yield session


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session for scripts: commits on success, rolls back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
