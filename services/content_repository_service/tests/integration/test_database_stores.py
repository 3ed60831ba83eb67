"""Integration tests for the SQLAlchemy storage backend and record stores."""

from __future__ import annotations

import pytest
from inkwell_common.error_enums import ErrorCode
from inkwell_common.status_enums import EntryStatus
from inkwell_common.storage_enums import StorageKind
from inkwell_service_libs.error_handling import InkwellError
from sqlalchemy.ext.asyncio import AsyncEngine

from services.content_repository_service.entry_versioning import EntryRepository
from services.content_repository_service.implementations.database_entry_store import (
    DatabaseEntryStore,
)
from services.content_repository_service.implementations.database_media_record_store import (
    DatabaseMediaRecordStore,
)
from services.content_repository_service.implementations.database_storage_backend import (
    DatabaseStorageBackend,
)
from services.content_repository_service.models_domain import (
    ContentEntry,
    EntryUpdate,
    MediaAsset,
)
from services.content_repository_service.schema_registry import CollectionSchemaRegistry
from services.content_repository_service.tests.fakes import SteppingClock


class TestDatabaseStorageBackend:
    """Document rows addressed by key, one table per storage kind."""

    async def test_write_read_overwrite_delete(self, engine: AsyncEngine) -> None:
        backend = DatabaseStorageBackend(engine, StorageKind.FILES)

        await backend.write("content/a.json", '{"v": 1}', "Create a")
        await backend.write("/content/a.json", b'{"v": 2}', "Update a")

        assert await backend.read("content/a.json") == b'{"v": 2}'
        assert await backend.exists("content/a.json")

        await backend.delete("content/a.json")

        assert not await backend.exists("content/a.json")
        with pytest.raises(InkwellError) as exc_info:
            await backend.read("content/a.json")
        assert exc_info.value.error_code == ErrorCode.RESOURCE_NOT_FOUND.value

    async def test_list_returns_direct_children_only(self, engine: AsyncEngine) -> None:
        backend = DatabaseStorageBackend(engine)
        for key in ("dir/b.json", "dir/a.json", "dir/sub/c.json", "dir_other/d.json", "e.json"):
            await backend.write(key, b"{}")

        assert await backend.list("dir") == ["a.json", "b.json"]
        assert await backend.list("") == ["e.json"]

    async def test_kinds_are_isolated(self, engine: AsyncEngine) -> None:
        files = DatabaseStorageBackend(engine, StorageKind.FILES)
        media = files.with_kind(StorageKind.MEDIA)

        await media.write("uploads/a.jpg", b"jpg")

        assert await media.exists("uploads/a.jpg")
        assert not await files.exists("uploads/a.jpg")

    async def test_delete_missing_key(self, engine: AsyncEngine) -> None:
        with pytest.raises(InkwellError) as exc_info:
            await DatabaseStorageBackend(engine).delete("ghost")
        assert exc_info.value.error_code == ErrorCode.RESOURCE_NOT_FOUND.value


class TestDatabaseEntryStore:
    """Unique (collection, slug) rows and atomic renames."""

    async def test_duplicate_slug_is_rejected(self, engine: AsyncEngine) -> None:
        store = DatabaseEntryStore(engine)
        await store.insert(ContentEntry(collection="posts", slug="a", data={"title": "A"}))

        with pytest.raises(InkwellError) as exc_info:
            await store.insert(ContentEntry(collection="posts", slug="a", data={}))
        assert exc_info.value.error_code == ErrorCode.DUPLICATE_KEY.value

        await store.insert(ContentEntry(collection="articles", slug="a", data={}))

    async def test_rename_is_a_single_move(self, engine: AsyncEngine) -> None:
        store = DatabaseEntryStore(engine)
        entry = ContentEntry(collection="posts", slug="old", data={"title": "T"})
        await store.insert(entry)

        await store.rename(entry.model_copy(update={"slug": "new"}), old_slug="old")

        assert await store.get("posts", "old") is None
        moved = await store.get("posts", "new")
        assert moved is not None
        assert moved.id == entry.id

    async def test_rename_onto_existing_slug_changes_nothing(self, engine: AsyncEngine) -> None:
        store = DatabaseEntryStore(engine)
        first = ContentEntry(collection="posts", slug="a", data={"n": 1})
        second = ContentEntry(collection="posts", slug="b", data={"n": 2})
        await store.insert(first)
        await store.insert(second)

        with pytest.raises(InkwellError) as exc_info:
            await store.rename(first.model_copy(update={"slug": "b"}), old_slug="a")

        assert exc_info.value.error_code == ErrorCode.DUPLICATE_KEY.value
        assert (await store.get("posts", "a")).data == {"n": 1}
        assert (await store.get("posts", "b")).data == {"n": 2}

    async def test_replace_and_delete_missing(self, engine: AsyncEngine) -> None:
        store = DatabaseEntryStore(engine)

        with pytest.raises(InkwellError):
            await store.replace(ContentEntry(collection="posts", slug="x"))
        with pytest.raises(InkwellError):
            await store.delete("posts", "x")

    async def test_versioning_engine_over_database(self, engine: AsyncEngine) -> None:
        repository = EntryRepository(
            DatabaseEntryStore(engine), CollectionSchemaRegistry(), clock=SteppingClock()
        )
        entry = await repository.create_entry(
            "posts", {"title": "Live", "media": ["m1"]}, status=EntryStatus.PUBLISHED
        )
        duplicate = await repository.create_entry("posts", {"title": "Live"})

        await repository.update_entry(
            "posts", entry.slug, EntryUpdate(data={"title": "Edited"}), publish=False
        )
        renamed = await repository.update_entry(
            "posts", entry.slug, EntryUpdate(slug="renamed"), publish=True
        )

        assert duplicate.slug == "live-2"
        assert renamed.slug == "renamed"
        assert renamed.data["title"] == "Live"
        assert renamed.pending_data is not None
        assert renamed.pending_data["title"] == "Edited"
        listed = await repository.list_entries("posts")
        assert [e.slug for e in listed.entries] == ["live-2", "renamed"]


class TestDatabaseMediaRecordStore:
    async def test_save_get_list_delete(self, engine: AsyncEngine) -> None:
        store = DatabaseMediaRecordStore(engine)
        clock = SteppingClock()
        older = MediaAsset(
            filename="a.jpg",
            original_name="a.jpg",
            slug="a-0001",
            path="uploads/a.jpg",
            url="/uploads/a.jpg",
            mime="image/jpeg",
            size=3,
            hash="h1",
            created_at=clock(),
        )
        newer = older.model_copy(
            update={"id": "second", "filename": "b.jpg", "created_at": clock()}
        )

        await store.save(older)
        await store.save(newer)
        await store.save(older.model_copy(update={"alt": "updated"}))

        assert (await store.get(older.id)).alt == "updated"
        assert [asset.id for asset in await store.list()] == ["second", older.id]

        await store.delete(older.id)

        assert await store.get(older.id) is None
        with pytest.raises(InkwellError) as exc_info:
            await store.delete(older.id)
        assert exc_info.value.error_code == ErrorCode.RESOURCE_NOT_FOUND.value
