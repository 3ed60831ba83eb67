"""Fixtures for database-backed integration tests (SQLite through aiosqlite)."""

from __future__ import annotations

from pathlib import Path
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from services.content_repository_service.implementations.database_support import (
    initialize_database_schema,
)


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'content_repository.db'}"


@pytest.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create an engine over a fresh database file with every table in place."""
    engine = create_async_engine(database_url, echo=False)
    await initialize_database_schema(engine)
    try:
        yield engine
    finally:
        await engine.dispose()
