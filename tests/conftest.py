"""
Configuración de fixtures para pytest.
"""
import os

# Configuracion de prueba antes de importar settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CRM_API_TOKEN"] = "test-token"
os.environ["WORKER_SECRET"] = "test-worker-secret"
os.environ["AUTH_USERNAME"] = "operador"
os.environ["AUTH_PASSWORD"] = "clave-segura"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["WORKER_DISPATCH_MODE"] = "http"

from typing import AsyncGenerator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crm_sync.infrastructure.database.session import Base
from crm_sync.infrastructure.database import models  # noqa: F401


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Sesión async sobre una base en memoria (lado API).
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
def sync_session_factory() -> sessionmaker:
    """
    Session factory sync sobre una base en memoria (lado worker).
    StaticPool comparte una unica conexion entre sesiones.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(engine, expire_on_commit=False, autoflush=False)
    yield factory
    Base.metadata.drop_all(engine)
    engine.dispose()
