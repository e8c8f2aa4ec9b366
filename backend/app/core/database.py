from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import Any, AsyncGenerator, Dict, Optional

from app.core.config import settings

Base = declarative_base()

# Created on first use so importing models never opens a connection
_engine: Optional[AsyncEngine] = None
_async_session_local: Optional[async_sessionmaker[AsyncSession]] = None


def get_database_url() -> str:
    """DATABASE_URL with the async driver filled in for plain postgres URLs"""
    db_url = settings.DATABASE_URL
    if db_url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + db_url[len("postgresql://"):]
    return db_url


def _engine_options(db_url: str) -> Dict[str, Any]:
    if db_url.startswith("sqlite"):
        # one connection per session; aiosqlite connections must not cross event loops
        return {"connect_args": {"check_same_thread": False}, "poolclass": NullPool}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        db_url = get_database_url()
        _engine = create_async_engine(db_url, echo=settings.DB_ECHO, **_engine_options(db_url))
    return _engine


def get_session_local() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the lazily created engine"""
    global _async_session_local
    if _async_session_local is None:
        _async_session_local = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )
    return _async_session_local


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    Services commit their own unit of work; anything left pending when the
    request ends without an error is committed here, anything else is rolled back.
    """
    async with get_session_local()() as session:
        try:
            yield session
            if session.new or session.dirty or session.deleted:
                await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    """Create missing tables"""
    import app.models  # noqa: F401  register models on the metadata

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    global _engine, _async_session_local
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_local = None
