"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from expoalerts.config import settings


def _engine_options(url: str) -> dict:
    # sqlite (local dev) uses a single-connection pool without sizing knobs
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)

# Session factory — each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """Create any missing tables. Called once from the app lifespan."""
    from expoalerts.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
