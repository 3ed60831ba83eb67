"""In-memory mock implementation of StorageBackendProtocol for tests."""

from __future__ import annotations

from inkwell_service_libs.error_handling import raise_connection_error, raise_resource_not_found

from services.content_repository_service.implementations.storage_keys import (
    direct_child_name,
    normalize_key,
    to_bytes,
)
from services.content_repository_service.protocols import StorageBackendProtocol


class MockStorageBackend(StorageBackendProtocol):
    """Simple in-memory storage backend recording commit messages."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.commit_messages: list[str] = []
        self.fail_deletes_for: set[str] = set()

    async def read(self, key: str) -> bytes:
        key = normalize_key(key)
        if key not in self.files:
            raise_resource_not_found("mock", "read", "file", key)
        return self.files[key]

    async def write(
        self, key: str, content: bytes | str, commit_message: str | None = None
    ) -> None:
        self.files[normalize_key(key)] = to_bytes(content)
        if commit_message:
            self.commit_messages.append(commit_message)

    async def delete(self, key: str, commit_message: str | None = None) -> None:
        key = normalize_key(key)
        if key in self.fail_deletes_for:
            raise_connection_error("mock", "delete", "mock-storage", f"Delete of {key} failed")
        if key not in self.files:
            raise_resource_not_found("mock", "delete", "file", key)
        del self.files[key]
        if commit_message:
            self.commit_messages.append(commit_message)

    async def exists(self, key: str) -> bool:
        return normalize_key(key) in self.files

    async def list(self, dir_key: str) -> list[str]:
        names = (direct_child_name(dir_key, key) for key in self.files)
        return sorted(name for name in names if name)

    async def ensure_dir(self, dir_key: str) -> None:
        return None
