"""
Munich Weekly Backend — Database Session Management
====================================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
How:   One engine per process; one session per request. The dependency
       commits when the handler returns and rolls back when it raises.

Connection pooling (PostgreSQL):
    pool_size=20, max_overflow=10  → at most 30 connections
    pool_pre_ping                  → stale connections are replaced on checkout
    pool_recycle=3600              → connections are recycled hourly
SQLite (tests, local experiments) uses SQLAlchemy's default pool, so the
pool arguments are only passed for server databases.
"""

from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import BigInteger, Integer
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from munich_weekly.config import settings


# Surrogate key type: BIGINT on PostgreSQL, INTEGER on SQLite so that
# SQLite's rowid autoincrement still applies.
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


def utcnow() -> datetime:
    """Timezone-aware current UTC time; the only clock used for persisted timestamps."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime read back from the database to aware UTC.

    SQLite drops tzinfo on round-trip, PostgreSQL keeps it; comparisons
    against utcnow() need both sides aware.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_engine(url: str) -> AsyncEngine:
    """Create the async engine with pool options suited to the backend."""
    kwargs: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(url, **kwargs)


# ── Engine & Session Factory ─────────────────────────────────────────────
engine = build_engine(settings.database_url)

# expire_on_commit=False: response models read attributes after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits on success, rolls back on any exception and re-raises so the
    global handlers can shape the response. The session is always closed.

    Example:
        @router.get("/issues")
        async def list_issues(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Close every pooled connection; called from the application lifespan."""
    await engine.dispose()
