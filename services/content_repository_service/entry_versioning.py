"""
Entry versioning and publishing engine.

Published entries keep their live ``data`` untouched while editors save
work in progress into ``pending_data``; publishing folds the pending layer
and the new edit into ``data``. Slugs are unique per collection and renames
leave exactly one addressable record.
"""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from inkwell_common.error_enums import ErrorCode
from inkwell_common.observability_enums import OperationType
from inkwell_common.status_enums import EntryStatus
from inkwell_service_libs.error_handling import (
    InkwellError,
    raise_duplicate_key,
    raise_resource_not_found,
    raise_validation_error,
)
from inkwell_service_libs.logging_utils import bind_operation_context, create_service_logger

from services.content_repository_service.models_domain import (
    ContentEntry,
    EntryListResult,
    EntryUpdate,
    utc_now,
)
from services.content_repository_service.operation_tracking import track_operation
from services.content_repository_service.protocols import (
    EntryStoreProtocol,
    RepositoryMetricsProtocol,
)
from services.content_repository_service.schema_registry import (
    CollectionSchemaRegistry,
    validate_entry_data,
)
from services.content_repository_service.slugs import slugify

logger = create_service_logger("content_repository.entries")

SERVICE = "content_repository_service"
DEFAULT_PAGE_LIMIT = 20
MAX_SLUG_ATTEMPTS = 50
FALLBACK_SLUG = "untitled"

_ENTRY_SORT_ALIASES = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "publishedAt": "published_at",
    "scheduledAt": "scheduled_at",
}


def merge_data(*layers: dict[str, Any] | None) -> dict[str, Any]:
    """Shallow merge, later layers win."""
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged


def _sort_value(value: Any) -> tuple[int, Any]:
    if value is None or value == "":
        return (0, "")
    if isinstance(value, bool):
        return (2, str(value))
    if isinstance(value, (int, float)):
        return (1, float(value))
    if isinstance(value, datetime):
        return (2, value.isoformat())
    if hasattr(value, "value"):
        return (2, str(value.value))
    return (2, str(value))


class EntryRepository:
    """CRUD plus the draft / pending / published state machine."""

    def __init__(
        self,
        store: EntryStoreProtocol,
        schemas: CollectionSchemaRegistry,
        metrics: RepositoryMetricsProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._schemas = schemas
        self._metrics = metrics
        self._clock = clock

    @property
    def schemas(self) -> CollectionSchemaRegistry:
        return self._schemas

    async def get_entry(
        self, collection: str, slug: str, correlation_id: UUID | None = None
    ) -> ContentEntry:
        entry = await self._store.get(collection, slug)
        if entry is None:
            raise_resource_not_found(
                service=SERVICE,
                operation="get_entry",
                resource_type="entry",
                resource_id=f"{collection}/{slug}",
                correlation_id=correlation_id,
            )
        return entry

    async def find_entry(self, collection: str, slug: str) -> ContentEntry | None:
        return await self._store.get(collection, slug)

    async def list_entries(
        self,
        collection: str,
        status: EntryStatus | None = None,
        limit: int | None = None,
        offset: int | None = None,
        sort_field: str | None = None,
        sort_direction: str | None = None,
    ) -> EntryListResult:
        """
        Filter, sort and paginate the entries of a collection.

        The sort field may be an entry attribute (``created_at``, camelCase
        accepted) or a key inside ``data``. Missing values sort last when
        descending. Pagination applies only when limit or offset is given.
        """
        entries = await self._store.list(collection)
        if status is not None:
            entries = [entry for entry in entries if entry.status is status]

        field = _ENTRY_SORT_ALIASES.get(sort_field or "", sort_field or "created_at")
        entry_level = field in ContentEntry.model_fields

        def sort_key(entry: ContentEntry) -> tuple[int, Any]:
            value = getattr(entry, field) if entry_level else entry.data.get(field)
            return _sort_value(value)

        entries.sort(key=sort_key, reverse=(sort_direction or "desc") != "asc")

        total = len(entries)
        if limit is not None or offset is not None:
            start = offset or 0
            entries = entries[start : start + (DEFAULT_PAGE_LIMIT if limit is None else limit)]

        return EntryListResult(entries=entries, total=total)

    async def get_published_entries(self, collection: str | None = None) -> list[ContentEntry]:
        """Published entries of one or every known collection, newest publication first."""
        if collection is not None:
            collections = [collection]
        else:
            collections = [schema.slug for schema in await self._schemas.list_collections()]

        results = await asyncio.gather(*(self._store.list(name) for name in collections))
        published = [
            entry
            for entries in results
            for entry in entries
            if entry.status is EntryStatus.PUBLISHED
        ]
        published.sort(key=lambda entry: entry.published_at or entry.created_at, reverse=True)
        return published

    def _raise_if_invalid(
        self,
        errors: list[str],
        operation: str,
        collection: str,
        correlation_id: UUID | None,
    ) -> None:
        if errors:
            raise_validation_error(
                service=SERVICE,
                operation=operation,
                field="data",
                message="; ".join(errors),
                correlation_id=correlation_id,
                collection=collection,
                errors=errors,
            )

    async def create_entry(
        self,
        collection: str,
        data: dict[str, Any],
        slug: str | None = None,
        status: EntryStatus = EntryStatus.DRAFT,
        title: str | None = None,
        author_id: str | None = None,
        correlation_id: UUID | None = None,
    ) -> ContentEntry:
        """
        Create an entry, deriving a unique slug.

        The slug comes from ``slug`` or the collection's title field and is
        suffixed with ``-2``, ``-3``... while the collection already holds it.

        Raises:
            InkwellError: RESOURCE_NOT_FOUND for an unknown collection,
                VALIDATION_ERROR when created as published with invalid data,
                DUPLICATE_KEY when no free slug was found
        """
        bind_operation_context("create_entry", correlation_id, collection=collection)
        with track_operation(self._metrics, OperationType.CREATE_ENTRY):
            schema = await self._schemas.require(collection, "create_entry", correlation_id)
            if status is EntryStatus.PUBLISHED:
                self._raise_if_invalid(
                    validate_entry_data(schema, data), "create_entry", collection, correlation_id
                )

            title_value = data.get(schema.title_field)
            resolved_title = title_value if isinstance(title_value, str) and title_value else title
            base_slug = slugify(slug or resolved_title or "") or FALLBACK_SLUG

            now = self._clock()
            for attempt in range(1, MAX_SLUG_ATTEMPTS + 1):
                candidate = base_slug if attempt == 1 else f"{base_slug}-{attempt}"
                entry = ContentEntry(
                    collection=collection,
                    slug=candidate,
                    status=status,
                    created_at=now,
                    updated_at=now,
                    published_at=now if status is EntryStatus.PUBLISHED else None,
                    author_id=author_id,
                    data=copy.deepcopy(data),
                )
                try:
                    await self._store.insert(entry)
                except InkwellError as e:
                    if e.error_code != ErrorCode.DUPLICATE_KEY.value:
                        raise
                    continue
                logger.info(
                    "Entry created",
                    collection=collection,
                    slug=candidate,
                    entry_id=entry.id,
                    status=status.value,
                )
                return entry

            raise_duplicate_key(
                service=SERVICE,
                operation="create_entry",
                resource_type="entry",
                key=f"{collection}/{base_slug}",
                correlation_id=correlation_id,
                attempts=MAX_SLUG_ATTEMPTS,
            )

    async def update_entry(
        self,
        collection: str,
        slug: str,
        updates: EntryUpdate,
        publish: bool = True,
        correlation_id: UUID | None = None,
    ) -> ContentEntry:
        """
        Apply an edit according to the publishing state machine.

        - published entry, not publishing, data given: the edit is merged
          over ``data`` and ``pending_data`` into a new ``pending_data``;
          live ``data`` and ``status`` stay as they are.
        - publishing with data: ``data``, ``pending_data`` and the edit are
          merged into ``data``, ``pending_data`` is cleared, the status
          becomes the requested one (``published`` by default) and
          ``published_at`` is stamped.
        - otherwise: the edit is merged into ``data`` in place.

        ``publish=True`` with ``status=draft`` therefore unpublishes by first
        committing pending edits into the working copy.

        Raises:
            InkwellError: RESOURCE_NOT_FOUND, VALIDATION_ERROR (only when the
                target status is published) or DUPLICATE_KEY for an occupied
                rename target
        """
        bind_operation_context("update_entry", correlation_id, collection=collection, slug=slug)
        with track_operation(self._metrics, OperationType.UPDATE_ENTRY):
            existing = await self.get_entry(collection, slug, correlation_id)

            new_slug = updates.slug or existing.slug
            if updates.slug and slugify(updates.slug) != updates.slug:
                raise_validation_error(
                    service=SERVICE,
                    operation="update_entry",
                    field="slug",
                    message=f"'{updates.slug}' is not a valid slug",
                    correlation_id=correlation_id,
                )

            currently_published = existing.status is EntryStatus.PUBLISHED
            is_publishing = publish or (
                updates.status is EntryStatus.PUBLISHED and not currently_published
            )
            has_data = updates.data is not None

            if has_data:
                if is_publishing:
                    target_status = updates.status or EntryStatus.PUBLISHED
                elif currently_published:
                    target_status = existing.status
                else:
                    target_status = updates.status or existing.status
                schema = await self._schemas.get(collection)
                if schema is not None and target_status is EntryStatus.PUBLISHED:
                    self._raise_if_invalid(
                        validate_entry_data(schema, merge_data(existing.data, updates.data)),
                        "update_entry",
                        collection,
                        correlation_id,
                    )

            now = self._clock()
            changes: dict[str, Any] = {"slug": new_slug, "updated_at": now}

            if currently_published and not is_publishing and has_data:
                changes["pending_data"] = merge_data(
                    existing.data, existing.pending_data, updates.data
                )
            elif is_publishing and has_data:
                changes["data"] = merge_data(existing.data, existing.pending_data, updates.data)
                changes["pending_data"] = None
                changes["status"] = updates.status or EntryStatus.PUBLISHED
                changes["published_at"] = now
            else:
                status = updates.status or existing.status
                changes["status"] = status
                changes["data"] = merge_data(existing.data, updates.data)
                if status is EntryStatus.PUBLISHED and not currently_published:
                    changes["published_at"] = now
                if status is not EntryStatus.PUBLISHED and existing.pending_data:
                    # Leaving published: pending edits become the working copy
                    changes["data"] = merge_data(
                        existing.data, existing.pending_data, updates.data
                    )
                    changes["pending_data"] = None

            updated = existing.model_copy(update=changes)

            if new_slug != slug:
                await self._store.rename(updated, old_slug=slug)
            else:
                await self._store.replace(updated)

            logger.info(
                "Entry updated",
                collection=collection,
                slug=new_slug,
                previous_slug=slug if new_slug != slug else None,
                status=updated.status.value,
                has_pending=updated.pending_data is not None,
                published=is_publishing and has_data,
            )
            return updated

    async def delete_entry(
        self, collection: str, slug: str, correlation_id: UUID | None = None
    ) -> None:
        bind_operation_context("delete_entry", correlation_id, collection=collection, slug=slug)
        with track_operation(self._metrics, OperationType.DELETE_ENTRY):
            await self.get_entry(collection, slug, correlation_id)
            await self._store.delete(collection, slug)
            logger.info("Entry deleted", collection=collection, slug=slug)

    async def duplicate_entry(
        self, collection: str, slug: str, correlation_id: UUID | None = None
    ) -> ContentEntry:
        """Create a draft copy titled ``"<title> (Copy)"`` from the working copy."""
        original = await self.get_entry(collection, slug, correlation_id)
        schema = await self._schemas.require(collection, "duplicate_entry", correlation_id)

        data = copy.deepcopy(merge_data(original.data, original.pending_data))
        current_title = data.get(schema.title_field)
        base_title = current_title if isinstance(current_title, str) and current_title else slug
        new_title = f"{base_title} (Copy)"
        data[schema.title_field] = new_title

        return await self.create_entry(
            collection,
            data,
            slug=slugify(new_title),
            status=EntryStatus.DRAFT,
            title=new_title,
            author_id=original.author_id,
            correlation_id=correlation_id,
        )

    async def save_reference_rewrite(
        self,
        entry: ContentEntry,
        data: dict[str, Any],
        pending_data: dict[str, Any] | None,
    ) -> ContentEntry:
        """
        Persist media reference rewrites without touching status or publication.

        Live ``data`` is rewritten too: a removed asset must not stay
        referenced by the public version of an entry.
        """
        updated = entry.model_copy(
            update={"data": data, "pending_data": pending_data, "updated_at": self._clock()}
        )
        await self._store.replace(updated)
        logger.info(
            "Entry media references rewritten",
            collection=entry.collection,
            slug=entry.slug,
        )
        return updated
