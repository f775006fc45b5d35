"""FastAPI dependency providers."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from threatpulse.core.database import get_session_factory
from threatpulse.pipeline.feed import NvdFeedClient


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for the duration of a request."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_pipeline_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory handed to pipeline runs (they manage their own transactions)."""
    return get_session_factory()


def get_feed_client() -> NvdFeedClient:
    return NvdFeedClient.from_settings()
