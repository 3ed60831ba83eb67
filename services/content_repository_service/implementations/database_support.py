"""Shared SQLAlchemy session handling for database-backed implementations."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from inkwell_service_libs.error_handling import raise_connection_error
from inkwell_service_libs.logging_utils import create_service_logger
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from services.content_repository_service.models_db import Base

logger = create_service_logger("content_repository.database")


async def initialize_database_schema(engine: AsyncEngine) -> None:
    """Create every table of the service if it does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized")


class DatabaseRepositoryBase:
    """Session factory plus commit/rollback handling for one engine."""

    def __init__(
        self,
        engine: AsyncEngine,
        sessionmaker: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        """Initialize the repository with a database engine."""
        self._engine = engine
        self._sessionmaker = sessionmaker or async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def _get_session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        """Yield a database session with proper transaction handling."""
        try:
            async with self._sessionmaker() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
        except (OperationalError, InterfaceError) as exc:
            logger.error("Database unavailable", operation=operation, error=str(exc))
            raise_connection_error(
                service="content_repository_service",
                operation=operation,
                target="database",
                message=f"Database unavailable during {operation}: {exc}",
            )
