import os

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base + all models so metadata is complete
from propertyhub.models import Base

from propertyhub.main import app
from propertyhub.core.db import get_db
from propertyhub.services.storage import LocalObjectStore, get_object_store

from tests.fixtures_seed import admin, owner_a, owner_b  # noqa: F401


def _test_db_url(tmp_path) -> str:
    # A real server when configured, otherwise a throwaway SQLite file per test
    return os.getenv("DATABASE_URL_TEST") or f"sqlite+aiosqlite:///{tmp_path / 'propertyhub-test.db'}"


@pytest_asyncio.fixture
async def async_engine(tmp_path):
    url = _test_db_url(tmp_path)
    connect_args = {"timeout": 30} if url.startswith("sqlite") else {}
    engine = create_async_engine(url, connect_args=connect_args)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(bind=async_engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def media_store(tmp_path):
    return LocalObjectStore(str(tmp_path / "media"), "/media")


@pytest_asyncio.fixture
async def client(session_factory, media_store):
    """
    HTTP client against the app; every request gets its own session,
    like production, so commits are visible across requests.
    """
    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_object_store] = lambda: media_store

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
