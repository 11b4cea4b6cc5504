"""
Marketplace Backend: Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
How:   One engine per process with connection pooling. Each request gets its
       own session that commits on success and rolls back on error.
Who:   Route handlers receive sessions through `Depends(get_db_session)`;
       Alembic imports `Base.metadata`.

Connection Pooling:
    pool_size=20, max_overflow=10, pool_pre_ping and an hourly recycle for
    PostgreSQL. SQLite (used by tests and local experiments) manages its own
    pool, so the sizing arguments are left out for it.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from marketplace.config import settings


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options for the given URL; SQLite rejects the queue-pool sizing."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
    )
    return options


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine configured for `database_url`."""
    return create_async_engine(database_url, **_engine_options(database_url))


# ── Engine & Session Factory ──────────────────────────────────────────────
engine = build_engine(settings.database_url)

# expire_on_commit=False keeps attributes readable after the request commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Every model registers with this metadata, which Alembic reads for
    autogeneration and tests use for `create_all`.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global handlers
        5. Always: closes the session (returns the connection to the pool)

    Example:
        @router.get("/projects/{project_id}")
        async def get_project(project_id: int, db: AsyncSession = Depends(get_db_session)):
            return await project_service.get_project(db, project_id)
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
    """Closes all pooled connections. Called from the shutdown lifespan."""
    await engine.dispose()
