"""
Engines y sesiones de base de datos.

La API usa el engine async (asyncpg/aiosqlite). El worker corre en threads
fuera del event loop y usa un engine sync (psycopg/pysqlite) creado lazy,
para que la API no abra un pool que no necesita.
"""
from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy import Engine, create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from crm_sync.core.config import settings

Base = declarative_base()


def _engine_kwargs(url: str) -> dict:
    kwargs = {"echo": settings.DEBUG}
    # SQLite no acepta pool_size/max_overflow
    if url.startswith("postgresql"):
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return kwargs


engine = create_async_engine(
    settings.effective_database_url,
    **_engine_kwargs(settings.effective_database_url),
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@lru_cache(maxsize=1)
def get_sync_engine() -> Engine:
    url = settings.sync_database_url
    return create_engine(url, **_engine_kwargs(url))


@lru_cache(maxsize=1)
def get_sync_session_factory() -> sessionmaker:
    """Session factory sincrona del worker, ligada a `get_sync_engine()`."""
    return sessionmaker(get_sync_engine(), expire_on_commit=False, autoflush=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependencia FastAPI: una sesion por request, commit al salir sin error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Crea las tablas propias si faltan (en produccion manda Alembic)."""
    from crm_sync.infrastructure.database import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
    if get_sync_engine.cache_info().currsize:
        get_sync_engine().dispose()
