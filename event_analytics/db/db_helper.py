from functools import wraps
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from event_analytics.core.config import settings
from event_analytics.db.models.event import BaseORM
from event_analytics.db.models.cohort import Cohort  # noqa: F401  registers the cohorts table


class DataBaseHelper:

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url: str = url or settings.db.url
        engine_kwargs: Dict[str, Any] = {
            "echo": settings.db.echo if echo is None else echo,
            "echo_pool": settings.db.echo_pool,
        }
        # SQLite pools do not take sizing arguments
        if not self.url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=settings.db.pool_size,
                max_overflow=settings.db.max_overflow,
            )

        self.engine: AsyncEngine = create_async_engine(url=self.url, **engine_kwargs)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )
        logger.info(f"DataBaseHelper initialized with engine for {self.engine.url.render_as_string()}.")

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    async def create_all(self):
        """Create the events, events_extra and cohorts tables if missing"""
        async with self.engine.begin() as conn:
            await conn.run_sync(BaseORM.metadata.create_all)
        logger.info("Database schema is ready.")

    async def dispose(self):
        await self.engine.dispose()
        logger.info("Disposed engine.")


def connection(method):
    """
    Decorator for service methods: opens a session on ``self.db`` and passes it
    as the ``session`` keyword. Rolls back an open transaction on error.
    """
    @wraps(method)
    async def wrapper(self, *args, **kwargs):
        async with self.db.session_factory() as session:
            try:
                return await method(self, *args, session=session, **kwargs)
            except Exception as e:
                if session.in_transaction():
                    await session.rollback()
                logger.error(f"Error in session for {method.__qualname__}: {e}")
                raise

    return wrapper
