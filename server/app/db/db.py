from typing import AsyncGenerator

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from app.core.config import settings


class Base(DeclarativeBase):
    pass


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.endswith("://"))


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    # in-memory sqlite needs one shared connection or every session sees an empty db
    if _is_memory_sqlite(url):
        return create_async_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, connect_args={"timeout": 30})
    return create_async_engine(url, echo=echo, pool_pre_ping=True, pool_size=10, max_overflow=10)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


def dialect_insert(session: AsyncSession, table):
    """INSERT construct supporting ON CONFLICT for the session's database."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(table)
    if dialect == "sqlite":
        return sqlite_insert(table)
    raise NotImplementedError(f"upserts are not supported on {dialect}")


engine = make_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
SessionLocal = make_session_factory(engine)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create all tables that do not exist yet."""
    # models register themselves on Base.metadata when imported
    from app.models import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
