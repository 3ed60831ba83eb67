"""Filesystem-based storage backend implementation."""

from __future__ import annotations

from pathlib import Path

import aiofiles
import aiofiles.os
from inkwell_service_libs.error_handling import (
    raise_external_service_error,
    raise_resource_not_found,
    raise_validation_error,
)
from inkwell_service_libs.logging_utils import create_service_logger

from services.content_repository_service.implementations.storage_keys import (
    normalize_key,
    to_bytes,
)
from services.content_repository_service.protocols import StorageBackendProtocol

logger = create_service_logger("content_repository.storage.filesystem")

SERVICE = "content_repository_service"


class FileSystemStorageBackend(StorageBackendProtocol):
    """
    Storage backend mapping keys to files below a root directory.

    No concurrency control: concurrent writers to one key race and the last
    write wins.
    """

    def __init__(self, root: Path) -> None:
        """
        Initialize filesystem storage backend.

        Args:
            root: Root directory every key is resolved against
        """
        self.root = root

    def _resolve(self, key: str, operation: str) -> Path:
        root = self.root.resolve()
        path = (root / normalize_key(key)).resolve()
        if path != root and root not in path.parents:
            raise_validation_error(
                service=SERVICE,
                operation=operation,
                field="key",
                message=f"Key '{key}' resolves outside the storage root",
                key=key,
            )
        return path

    async def read(self, key: str) -> bytes:
        path = self._resolve(key, "read")
        if not await aiofiles.os.path.isfile(path):
            raise_resource_not_found(
                service=SERVICE,
                operation="read",
                resource_type="file",
                resource_id=normalize_key(key),
            )
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}", exc_info=True)
            raise_external_service_error(
                service=SERVICE,
                operation="read",
                external_service="filesystem",
                message=f"Failed to read '{key}': {e}",
                key=key,
            )

    async def write(
        self, key: str, content: bytes | str, commit_message: str | None = None
    ) -> None:
        path = self._resolve(key, "write")
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(to_bytes(content))
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}", exc_info=True)
            raise_external_service_error(
                service=SERVICE,
                operation="write",
                external_service="filesystem",
                message=f"Failed to write '{key}': {e}",
                key=key,
            )
        logger.debug("Wrote file", key=normalize_key(key), message=commit_message)

    async def delete(self, key: str, commit_message: str | None = None) -> None:
        path = self._resolve(key, "delete")
        if not await aiofiles.os.path.isfile(path):
            raise_resource_not_found(
                service=SERVICE,
                operation="delete",
                resource_type="file",
                resource_id=normalize_key(key),
            )
        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            logger.error(f"Failed to delete {path}: {e}", exc_info=True)
            raise_external_service_error(
                service=SERVICE,
                operation="delete",
                external_service="filesystem",
                message=f"Failed to delete '{key}': {e}",
                key=key,
            )
        logger.debug("Deleted file", key=normalize_key(key), message=commit_message)

    async def exists(self, key: str) -> bool:
        return bool(await aiofiles.os.path.isfile(self._resolve(key, "exists")))

    async def list(self, dir_key: str) -> list[str]:
        path = self._resolve(dir_key, "list")
        if not await aiofiles.os.path.isdir(path):
            return []
        names = await aiofiles.os.listdir(path)
        files = [name for name in names if await aiofiles.os.path.isfile(path / name)]
        return sorted(files)

    async def ensure_dir(self, dir_key: str) -> None:
        await aiofiles.os.makedirs(self._resolve(dir_key, "ensure_dir"), exist_ok=True)
