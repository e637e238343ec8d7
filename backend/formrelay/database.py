"""
FormRelay Backend — Database Engine & Sessions
================================================

What:  The async engine, the session factory every request and startup task
       draws from, and the declarative Base shared by all models.
Who:   Routes get a session through get_db_session; the lifespan and tests
       use async_session_factory directly.

Transaction Ownership:
    Simple CRUD services only flush; the request-scoped session commits.
    Workflows that must push live notifications (submission, assignment,
    quota changes) commit explicitly so the push happens after the data
    is durable. A later commit from get_db_session is then a no-op.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from formrelay.config import settings


def _engine_options(url: str) -> dict:
    """Pool options only apply to server databases; SQLite uses its own pool."""
    options = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: ORM objects stay readable after commit without
# triggering lazy loads (which are not allowed under asyncio)
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """Declarative base; Alembic autogenerate reads Base.metadata."""


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request: commit when the handler returns, roll back
    when it raises.

    Services that already committed leave nothing pending, so the final
    commit is cheap. The session is closed on exit either way.
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


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    await engine.dispose()
