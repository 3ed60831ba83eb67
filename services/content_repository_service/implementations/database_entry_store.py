"""Entry store keeping one first-class row per entry."""

from __future__ import annotations

from inkwell_service_libs.error_handling import raise_duplicate_key, raise_resource_not_found
from inkwell_service_libs.logging_utils import create_service_logger
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from services.content_repository_service.implementations.database_support import (
    DatabaseRepositoryBase,
)
from services.content_repository_service.models_db import ContentEntryRecord
from services.content_repository_service.models_domain import ContentEntry
from services.content_repository_service.protocols import EntryStoreProtocol

logger = create_service_logger("content_repository.entries.database")


def _row_values(entry: ContentEntry) -> dict:
    return {
        "collection": entry.collection,
        "slug": entry.slug,
        "status": entry.status.value,
        "created_at": entry.created_at,
        "document": entry.model_dump(mode="json"),
    }


class DatabaseEntryStore(DatabaseRepositoryBase, EntryStoreProtocol):
    """Entries stored in ``content_entries`` with a unique (collection, slug)."""

    async def get(self, collection: str, slug: str) -> ContentEntry | None:
        async with self._get_session("get_entry") as session:
            stmt = select(ContentEntryRecord.document).where(
                ContentEntryRecord.collection == collection,
                ContentEntryRecord.slug == slug,
            )
            document = (await session.execute(stmt)).scalar_one_or_none()
        return ContentEntry.model_validate(document) if document is not None else None

    async def list(self, collection: str) -> list[ContentEntry]:
        async with self._get_session("list_entries") as session:
            stmt = (
                select(ContentEntryRecord.document)
                .where(ContentEntryRecord.collection == collection)
                .order_by(ContentEntryRecord.created_at)
            )
            documents = (await session.execute(stmt)).scalars().all()
        return [ContentEntry.model_validate(document) for document in documents]

    async def insert(self, entry: ContentEntry) -> None:
        try:
            async with self._get_session("insert_entry") as session:
                session.add(ContentEntryRecord(id=entry.id, **_row_values(entry)))
        except IntegrityError:
            raise_duplicate_key(
                service="content_repository_service",
                operation="insert_entry",
                resource_type="entry",
                key=f"{entry.collection}/{entry.slug}",
            )

    async def replace(self, entry: ContentEntry) -> None:
        async with self._get_session("replace_entry") as session:
            result = await session.execute(
                update(ContentEntryRecord)
                .where(ContentEntryRecord.id == entry.id)
                .values(**_row_values(entry))
            )
            if result.rowcount == 0:
                raise_resource_not_found(
                    service="content_repository_service",
                    operation="replace_entry",
                    resource_type="entry",
                    resource_id=f"{entry.collection}/{entry.slug}",
                )

    async def rename(self, entry: ContentEntry, old_slug: str) -> None:
        # Single UPDATE: the unique constraint rejects an occupied target atomically
        try:
            async with self._get_session("rename_entry") as session:
                result = await session.execute(
                    update(ContentEntryRecord)
                    .where(
                        ContentEntryRecord.collection == entry.collection,
                        ContentEntryRecord.slug == old_slug,
                    )
                    .values(**_row_values(entry))
                )
                if result.rowcount == 0:
                    raise_resource_not_found(
                        service="content_repository_service",
                        operation="rename_entry",
                        resource_type="entry",
                        resource_id=f"{entry.collection}/{old_slug}",
                    )
        except IntegrityError:
            raise_duplicate_key(
                service="content_repository_service",
                operation="rename_entry",
                resource_type="entry",
                key=f"{entry.collection}/{entry.slug}",
            )
        logger.debug("Renamed entry row", collection=entry.collection, slug=entry.slug)

    async def delete(self, collection: str, slug: str) -> None:
        async with self._get_session("delete_entry") as session:
            result = await session.execute(
                delete(ContentEntryRecord).where(
                    ContentEntryRecord.collection == collection,
                    ContentEntryRecord.slug == slug,
                )
            )
            if result.rowcount == 0:
                raise_resource_not_found(
                    service="content_repository_service",
                    operation="delete_entry",
                    resource_type="entry",
                    resource_id=f"{collection}/{slug}",
                )
