"""
Reference integrity between entries and media assets.

Media ids are embedded in entry data in collection specific shapes. Each
collection registers a ``CollectionReferenceExtractor`` composed of field
rules that know one shape each; the scanner walks every entry of every
known collection and asks the matching extractor to find or rewrite ids in
both the live ``data`` and the ``pending_data`` layer.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Iterable, Protocol
from uuid import UUID

from inkwell_common.observability_enums import OperationType
from inkwell_service_libs.logging_utils import create_service_logger

from services.content_repository_service.entry_versioning import EntryRepository
from services.content_repository_service.models_domain import (
    ContentEntry,
    DanglingReference,
    MediaUsage,
    ReferenceCascadeReport,
)
from services.content_repository_service.operation_tracking import track_operation
from services.content_repository_service.protocols import (
    MediaReferenceExtractor,
    RepositoryMetricsProtocol,
)

logger = create_service_logger("content_repository.references")


def _substitute(ids: list[Any], old_id: str, new_id: str | None) -> list[Any]:
    """Drop or swap old_id, keeping every other id as it was."""
    if old_id not in ids:
        return list(ids)
    result = [media_id for media_id in ids if media_id != old_id]
    if new_id is not None and new_id not in result:
        result.insert(ids.index(old_id), new_id)
    return result


class ReferenceField(Protocol):
    """One place inside entry data where media ids live."""

    def find(self, data: dict[str, Any]) -> set[str]:
        ...

    def rewrite(self, data: dict[str, Any], old_id: str, new_id: str | None) -> None:
        """Rewrite in place. Called on a private copy of the data."""
        ...


class MediaListField:
    """An ordered list of media ids with an optional cover pointing into it."""

    def __init__(self, key: str, cover_key: str | None = None) -> None:
        self.key = key
        self.cover_key = cover_key

    def find(self, data: dict[str, Any]) -> set[str]:
        found: set[str] = set()
        ids = data.get(self.key)
        if isinstance(ids, list):
            found.update(media_id for media_id in ids if isinstance(media_id, str))
        if self.cover_key and isinstance(data.get(self.cover_key), str):
            found.add(data[self.cover_key])
        return found

    def rewrite(self, data: dict[str, Any], old_id: str, new_id: str | None) -> None:
        ids = data.get(self.key)
        if isinstance(ids, list) and old_id in ids:
            data[self.key] = _substitute(ids, old_id, new_id)

        if self.cover_key and data.get(self.cover_key) == old_id:
            remaining = data.get(self.key)
            if new_id is not None:
                data[self.cover_key] = new_id
            elif isinstance(remaining, list) and remaining:
                data[self.cover_key] = remaining[0]
            else:
                data.pop(self.cover_key)


class SingleMediaField:
    """A field holding one media id."""

    def __init__(self, key: str) -> None:
        self.key = key

    def find(self, data: dict[str, Any]) -> set[str]:
        value = data.get(self.key)
        return {value} if isinstance(value, str) and value else set()

    def rewrite(self, data: dict[str, Any], old_id: str, new_id: str | None) -> None:
        if data.get(self.key) != old_id:
            return
        if new_id is None:
            data.pop(self.key)
        else:
            data[self.key] = new_id


class NestedMediaField:
    """A media id inside a nested object, e.g. ``seo.ogImage``."""

    def __init__(self, parent_key: str, key: str) -> None:
        self.parent_key = parent_key
        self.field = SingleMediaField(key)

    def find(self, data: dict[str, Any]) -> set[str]:
        parent = data.get(self.parent_key)
        return self.field.find(parent) if isinstance(parent, dict) else set()

    def rewrite(self, data: dict[str, Any], old_id: str, new_id: str | None) -> None:
        parent = data.get(self.parent_key)
        if isinstance(parent, dict):
            self.field.rewrite(parent, old_id, new_id)


class ContentBlocksField:
    """
    Structured content blocks.

    Gallery-like blocks carry ``mediaIds``; image-like blocks carry a single
    ``mediaId``. An image-like block whose media is removed is dropped.
    """

    def __init__(self, key: str = "content") -> None:
        self.key = key

    def _blocks(self, data: dict[str, Any]) -> list[Any]:
        blocks = data.get(self.key)
        return blocks if isinstance(blocks, list) else []

    def find(self, data: dict[str, Any]) -> set[str]:
        found: set[str] = set()
        for block in self._blocks(data):
            if not isinstance(block, dict):
                continue
            if isinstance(block.get("mediaId"), str):
                found.add(block["mediaId"])
            if isinstance(block.get("mediaIds"), list):
                found.update(m for m in block["mediaIds"] if isinstance(m, str))
        return found

    def rewrite(self, data: dict[str, Any], old_id: str, new_id: str | None) -> None:
        if self.key not in data or not isinstance(data[self.key], list):
            return
        blocks: list[Any] = []
        for block in data[self.key]:
            if isinstance(block, dict):
                if isinstance(block.get("mediaIds"), list) and old_id in block["mediaIds"]:
                    block["mediaIds"] = _substitute(block["mediaIds"], old_id, new_id)
                if block.get("mediaId") == old_id:
                    if new_id is None:
                        continue
                    block["mediaId"] = new_id
            blocks.append(block)
        data[self.key] = blocks


class CollectionReferenceExtractor(MediaReferenceExtractor):
    """Media reference knowledge for one collection, built from field rules."""

    def __init__(self, collection: str, fields: Iterable[ReferenceField]) -> None:
        self.collection = collection
        self.fields = list(fields)

    def find_references(self, data: dict[str, Any]) -> set[str]:
        found: set[str] = set()
        for field in self.fields:
            found |= field.find(data)
        return found

    def rewrite(self, data: dict[str, Any], old_id: str, new_id: str | None) -> dict[str, Any]:
        rewritten = copy.deepcopy(data)
        for field in self.fields:
            field.rewrite(rewritten, old_id, new_id)
        return rewritten


def posts_extractor() -> CollectionReferenceExtractor:
    return CollectionReferenceExtractor(
        "posts",
        [MediaListField("media", cover_key="coverMediaId"), NestedMediaField("seo", "ogImage")],
    )


def articles_extractor() -> CollectionReferenceExtractor:
    return CollectionReferenceExtractor(
        "articles",
        [
            SingleMediaField("featuredImage"),
            ContentBlocksField("content"),
            NestedMediaField("seo", "ogImage"),
        ],
    )


def generic_extractor(collection: str = "*") -> CollectionReferenceExtractor:
    """Every known shape, used for collections without a registered extractor."""
    return CollectionReferenceExtractor(
        collection,
        [
            MediaListField("media", cover_key="coverMediaId"),
            SingleMediaField("featuredImage"),
            ContentBlocksField("content"),
            NestedMediaField("seo", "ogImage"),
        ],
    )


class ReferenceExtractorRegistry:
    """Extractors registered per collection, with a catch-all fallback."""

    def __init__(
        self,
        extractors: Iterable[MediaReferenceExtractor] = (),
        fallback: MediaReferenceExtractor | None = None,
    ) -> None:
        self._extractors: dict[str, MediaReferenceExtractor] = {}
        self._fallback = fallback or generic_extractor()
        for extractor in extractors:
            self.register(extractor)

    @classmethod
    def with_builtin_extractors(cls) -> ReferenceExtractorRegistry:
        return cls([posts_extractor(), articles_extractor()])

    def register(self, extractor: MediaReferenceExtractor) -> None:
        self._extractors[extractor.collection] = extractor

    def get(self, collection: str) -> MediaReferenceExtractor:
        return self._extractors.get(collection, self._fallback)


class ReferenceIntegrityScanner:
    """Finds and rewrites media ids across every entry of every known collection."""

    def __init__(
        self,
        entries: EntryRepository,
        extractors: ReferenceExtractorRegistry,
        metrics: RepositoryMetricsProtocol | None = None,
    ) -> None:
        self._entries = entries
        self._extractors = extractors
        self._metrics = metrics

    async def _all_entries(self) -> list[ContentEntry]:
        collections = [schema.slug for schema in await self._entries.schemas.list_collections()]
        results = await asyncio.gather(
            *(self._entries.list_entries(collection) for collection in collections)
        )
        return [entry for result in results for entry in result.entries]

    def _references(self, entry: ContentEntry) -> set[str]:
        extractor = self._extractors.get(entry.collection)
        found = extractor.find_references(entry.data)
        if entry.pending_data:
            found |= extractor.find_references(entry.pending_data)
        return found

    async def _rewrite_everywhere(
        self, old_id: str, new_id: str | None, correlation_id: UUID | None
    ) -> ReferenceCascadeReport:
        report = ReferenceCascadeReport()
        with track_operation(self._metrics, OperationType.REFERENCE_CASCADE):
            for entry in await self._all_entries():
                extractor = self._extractors.get(entry.collection)
                data = extractor.rewrite(entry.data, old_id, new_id)
                pending = (
                    extractor.rewrite(entry.pending_data, old_id, new_id)
                    if entry.pending_data is not None
                    else None
                )
                if data == entry.data and pending == entry.pending_data:
                    continue
                await self._entries.save_reference_rewrite(entry, data, pending)
                report.updated_entries += 1
                report.entries.append(f"{entry.collection}/{entry.slug}")

        logger.info(
            "Media reference cascade finished",
            old_media_id=old_id,
            new_media_id=new_id,
            updated_entries=report.updated_entries,
            correlation_id=str(correlation_id) if correlation_id else None,
        )
        return report

    async def remove_media_references(
        self, media_id: str, correlation_id: UUID | None = None
    ) -> ReferenceCascadeReport:
        """Strip a media id from every referencing entry."""
        return await self._rewrite_everywhere(media_id, None, correlation_id)

    async def replace_media_references(
        self, old_id: str, new_id: str, correlation_id: UUID | None = None
    ) -> ReferenceCascadeReport:
        """Point every reference to old_id at new_id instead."""
        return await self._rewrite_everywhere(old_id, new_id, correlation_id)

    async def find_media_usage(self, media_id: str) -> list[MediaUsage]:
        return [
            MediaUsage(collection=entry.collection, slug=entry.slug, title=entry.title)
            for entry in await self._all_entries()
            if media_id in self._references(entry)
        ]

    async def find_dangling_references(self, known_media_ids: set[str]) -> list[DanglingReference]:
        """Entries referencing media ids that no longer exist."""
        dangling: list[DanglingReference] = []
        for entry in await self._all_entries():
            missing = self._references(entry) - known_media_ids
            if missing:
                dangling.append(
                    DanglingReference(
                        collection=entry.collection,
                        slug=entry.slug,
                        media_ids=sorted(missing),
                    )
                )
        return dangling
