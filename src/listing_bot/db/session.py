"""
Async SQLAlchemy engine and session factory.

Usage:
    async with async_session_factory() as session:
        result = await session.execute(select(Property))

FastAPI endpoints take a session through the `get_session` dependency.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from listing_bot.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,  # log SQL statements when DEBUG=true
    pool_size=5,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional async session scope."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
