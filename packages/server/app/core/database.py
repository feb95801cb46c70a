"""
Database engine and per-request session management.

Every request gets one ``AsyncSession``; its work is committed when the
handler returns and rolled back when it raises, so multi-step workflows
(plan activation, invitation acceptance) land atomically.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from app.core.config import get_settings

settings = get_settings()


def make_engine(url: str, **kwargs) -> AsyncEngine:
    return create_async_engine(url, echo=settings.debug, future=True, **kwargs)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = make_engine(settings.database_url)
async_session_factory = make_session_factory(engine)


async def init_db(bind: AsyncEngine = engine) -> None:
    """Create all tables (development and tests only; use migrations in production)."""
    import app.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

