"""Database engine and session factories."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from affiliate_core.config.settings import settings


def create_engine(url: str | None = None, use_null_pool: bool = False) -> AsyncEngine:
    """
    Create async engine.

    Args:
        url: Database URL, defaults to settings.database_url
        use_null_pool: Disable pooling (workers running one loop per thread)

    Returns:
        Async engine
    """
    kwargs = {"echo": settings.database_echo}
    if use_null_pool:
        kwargs["poolclass"] = NullPool
    return create_async_engine(url or settings.database_url, **kwargs)


def create_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to engine."""
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
