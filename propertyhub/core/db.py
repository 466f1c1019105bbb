from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from propertyhub.core.config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("postgresql+asyncpg"):
        return {"timeout": settings.database_timeout_seconds, "command_timeout": settings.database_timeout_seconds}
    if url.startswith("sqlite"):
        return {"timeout": settings.database_timeout_seconds}
    return {}


engine = create_async_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
)
SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session
