"""Entry store persisting one JSON document per entry through a storage backend."""

from __future__ import annotations

import asyncio

from inkwell_common.error_enums import ErrorCode
from inkwell_service_libs.error_handling import InkwellError, raise_duplicate_key
from inkwell_service_libs.logging_utils import create_service_logger

from services.content_repository_service.models_domain import ContentEntry
from services.content_repository_service.protocols import (
    EntryStoreProtocol,
    StorageBackendProtocol,
)

logger = create_service_logger("content_repository.entries.storage")

ENTRIES_BASE = "content/entries"


def entry_key(collection: str, slug: str) -> str:
    return f"{ENTRIES_BASE}/{collection}/{slug}.json"


def collection_dir(collection: str) -> str:
    return f"{ENTRIES_BASE}/{collection}"


class StorageEntryStore(EntryStoreProtocol):
    """Entries stored at ``content/entries/<collection>/<slug>.json``."""

    def __init__(self, backend: StorageBackendProtocol) -> None:
        self._backend = backend

    @staticmethod
    def _serialize(entry: ContentEntry) -> str:
        return entry.model_dump_json(indent=2)

    async def get(self, collection: str, slug: str) -> ContentEntry | None:
        try:
            raw = await self._backend.read(entry_key(collection, slug))
        except InkwellError as e:
            if e.error_code == ErrorCode.RESOURCE_NOT_FOUND.value:
                return None
            raise
        return ContentEntry.model_validate_json(raw)

    async def list(self, collection: str) -> list[ContentEntry]:
        directory = collection_dir(collection)
        names = [name for name in await self._backend.list(directory) if name.endswith(".json")]
        documents = await asyncio.gather(
            *(self._backend.read(f"{directory}/{name}") for name in names)
        )
        return [ContentEntry.model_validate_json(raw) for raw in documents]

    async def insert(self, entry: ContentEntry) -> None:
        key = entry_key(entry.collection, entry.slug)
        if await self._backend.exists(key):
            raise_duplicate_key(
                service="content_repository_service",
                operation="insert_entry",
                resource_type="entry",
                key=f"{entry.collection}/{entry.slug}",
            )
        await self._backend.ensure_dir(collection_dir(entry.collection))
        await self._backend.write(
            key, self._serialize(entry), f"Create {entry.collection}: {entry.title}"
        )

    async def replace(self, entry: ContentEntry) -> None:
        await self._backend.write(
            entry_key(entry.collection, entry.slug),
            self._serialize(entry),
            f"Update {entry.collection}: {entry.title}",
        )

    async def rename(self, entry: ContentEntry, old_slug: str) -> None:
        new_key = entry_key(entry.collection, entry.slug)
        old_key = entry_key(entry.collection, old_slug)
        if await self._backend.exists(new_key):
            raise_duplicate_key(
                service="content_repository_service",
                operation="rename_entry",
                resource_type="entry",
                key=f"{entry.collection}/{entry.slug}",
            )

        message = f"Rename {entry.collection}: {old_slug} -> {entry.slug}"
        await self._backend.write(new_key, self._serialize(entry), message)
        try:
            await self._backend.delete(old_key, message)
        except InkwellError:
            logger.error(
                "Rename failed to remove old entry, rolling back new key",
                collection=entry.collection,
                old_slug=old_slug,
                new_slug=entry.slug,
            )
            await self._backend.delete(new_key, f"Revert {message}")
            raise

    async def delete(self, collection: str, slug: str) -> None:
        await self._backend.delete(entry_key(collection, slug), f"Delete {collection}: {slug}")
