"""Database session management."""

import logging
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import Settings

logger = logging.getLogger(__name__)


class Database:
    """
    Owns the async engine and session factory.

    Constructed once per process (in the app lifespan) and handed to request
    handlers through the `get_db` dependency.
    """

    def __init__(self, url: str, **engine_kwargs: Any):
        self.url = url
        self._engine_kwargs = engine_kwargs
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build a pooled Postgres handle from application settings."""
        connect_args: dict[str, Any] = {"timeout": settings.db_timeout_seconds}
        if settings.database_requires_ssl:
            connect_args["ssl"] = "require"
        return cls(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
            connect_args=connect_args,
        )

    @property
    def is_connected(self) -> bool:
        return self.engine is not None

    def connect(self) -> None:
        """Create the engine. Connections are opened lazily by the pool."""
        if self.engine is not None:
            return
        self.engine = create_async_engine(self.url, **self._engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine created for %s", self.engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        """Dispose of the engine and every pooled connection."""
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self.session_factory = None
        logger.info("Database engine disposed")

    async def ping(self) -> None:
        """Round-trip a trivial query; raises if the database is unreachable."""
        async with self.session() as session:
            await session.execute(text("SELECT 1"))

    def session(self) -> AsyncSession:
        if self.session_factory is None:
            self.connect()
        assert self.session_factory is not None
        return self.session_factory()


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the process-wide database handle."""
    return request.app.state.database


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    database = get_database(request)
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
