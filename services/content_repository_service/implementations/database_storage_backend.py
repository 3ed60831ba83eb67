"""Document-database storage backend implementation (SQLAlchemy async)."""

from __future__ import annotations

from inkwell_common.storage_enums import StorageKind
from inkwell_service_libs.error_handling import raise_resource_not_found
from inkwell_service_libs.logging_utils import create_service_logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from services.content_repository_service.implementations.database_support import (
    DatabaseRepositoryBase,
)
from services.content_repository_service.implementations.storage_keys import (
    direct_child_name,
    normalize_key,
    to_bytes,
)
from services.content_repository_service.models_db import DOCUMENT_MODELS
from services.content_repository_service.protocols import StorageBackendProtocol

logger = create_service_logger("content_repository.storage.database")


class DatabaseStorageBackend(DatabaseRepositoryBase, StorageBackendProtocol):
    """
    Storage backend keeping one row per logical file.

    Rows live in one table per StorageKind; the kind is chosen explicitly
    when the backend is constructed (see ``with_kind``).
    """

    def __init__(
        self,
        engine: AsyncEngine,
        kind: StorageKind = StorageKind.FILES,
        sessionmaker: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        super().__init__(engine, sessionmaker)
        self.kind = kind
        self._model = DOCUMENT_MODELS[kind]

    def with_kind(self, kind: StorageKind) -> DatabaseStorageBackend:
        """Return a backend over the same engine addressing another kind's table."""
        return DatabaseStorageBackend(self._engine, kind, self._sessionmaker)

    async def read(self, key: str) -> bytes:
        key = normalize_key(key)
        async with self._get_session("read") as session:
            row = await session.get(self._model, key)
            if row is None:
                raise_resource_not_found(
                    service="content_repository_service",
                    operation="read",
                    resource_type="file",
                    resource_id=key,
                    kind=self.kind.value,
                )
            return bytes(row.content)

    async def write(
        self, key: str, content: bytes | str, commit_message: str | None = None
    ) -> None:
        key = normalize_key(key)
        async with self._get_session("write") as session:
            row = await session.get(self._model, key)
            if row is None:
                session.add(
                    self._model(
                        file_path=key,
                        content=to_bytes(content),
                        commit_message=commit_message,
                    )
                )
            else:
                row.content = to_bytes(content)
                row.commit_message = commit_message
        logger.debug("Stored document", kind=self.kind.value, key=key)

    async def delete(self, key: str, commit_message: str | None = None) -> None:
        key = normalize_key(key)
        async with self._get_session("delete") as session:
            row = await session.get(self._model, key)
            if row is None:
                raise_resource_not_found(
                    service="content_repository_service",
                    operation="delete",
                    resource_type="file",
                    resource_id=key,
                    kind=self.kind.value,
                )
            await session.delete(row)
        logger.debug("Deleted document", kind=self.kind.value, key=key, message=commit_message)

    async def exists(self, key: str) -> bool:
        async with self._get_session("exists") as session:
            stmt = select(self._model.file_path).where(
                self._model.file_path == normalize_key(key)
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def list(self, dir_key: str) -> list[str]:
        dir_key = normalize_key(dir_key)
        prefix = f"{dir_key}/" if dir_key else ""
        async with self._get_session("list") as session:
            stmt = select(self._model.file_path).where(
                self._model.file_path.startswith(prefix, autoescape=True)
            )
            result = await session.execute(stmt)
            keys = result.scalars().all()
        names = (direct_child_name(dir_key, key) for key in keys)
        return sorted(name for name in names if name)

    async def ensure_dir(self, dir_key: str) -> None:
        return None
