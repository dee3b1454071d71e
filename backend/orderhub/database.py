"""Database engine and session helpers."""

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import Settings

Base = declarative_base()


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.get_database_url(),
        pool_pre_ping=True,
        echo=settings.sql_echo,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    # Fast path for demos; production deployments should run migrations.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
