"""
Database engine and sessions.

The engine is created on first use so that tests can point
``DATABASE_URL`` at SQLite before anything connects. Services commit their
own work; ``get_db`` only rolls back what a failed request left behind.
"""
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from abiboard.core.config import settings

Base = declarative_base()

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None

ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def get_database_url() -> str:
    """DATABASE_URL with an async driver filled in"""
    url = settings.DATABASE_URL
    for prefix, async_prefix in ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return async_prefix + url[len(prefix):]
    return url


def get_engine() -> AsyncEngine:
    """
    SQLite and development databases run without a pool; production
    PostgreSQL keeps a small pre-pinged pool.
    """
    global _engine
    if _engine is not None:
        return _engine

    url = get_database_url()
    options = {"echo": settings.DB_ECHO}
    if url.startswith("sqlite"):
        options.update(connect_args={"check_same_thread": False}, poolclass=NullPool)
    elif settings.is_dev_mode():
        options.update(poolclass=NullPool)
    else:
        options.update(pool_size=5, max_overflow=10, pool_recycle=1800, pool_pre_ping=True)

    _engine = create_async_engine(url, **options)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)
    return _session_factory


def AsyncSessionLocal() -> AsyncSession:
    """New session outside a request, e.g. for startup tasks"""
    return get_session_factory()()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request"""
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables for every registered model"""
    import abiboard.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
