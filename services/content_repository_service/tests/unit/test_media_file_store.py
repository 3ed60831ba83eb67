"""Unit tests for MediaFileStore key and URL handling."""

from __future__ import annotations

import pytest

from services.content_repository_service.implementations.media_file_store import (
    VARIANTS_AREA,
    MediaFileStore,
)
from services.content_repository_service.implementations.mock_storage_backend import (
    MockStorageBackend,
)


@pytest.fixture
def file_store(backend: MockStorageBackend) -> MediaFileStore:
    return MediaFileStore(
        backend, public_base_url="https://cdn.example.test/", upload_prefix="/uploads/"
    )


class TestMediaFileStore:
    async def test_save_returns_key_and_public_url(
        self, file_store: MediaFileStore, backend: MockStorageBackend
    ) -> None:
        path, url = await file_store.save("a-1f2e-thumb.jpg", b"jpg", VARIANTS_AREA)

        assert path == "uploads/variants/a-1f2e-thumb.jpg"
        assert url == "https://cdn.example.test/uploads/variants/a-1f2e-thumb.jpg"
        assert backend.files[path] == b"jpg"

    async def test_delete_by_url_when_path_is_unknown(
        self, file_store: MediaFileStore, backend: MockStorageBackend
    ) -> None:
        _, url = await file_store.save("a.jpg", b"x")

        assert await file_store.delete(None, url) is True
        assert backend.files == {}

    async def test_delete_of_missing_file_returns_false(self, file_store: MediaFileStore) -> None:
        assert await file_store.delete("uploads/ghost.jpg") is False
        assert await file_store.delete(None, None) is False

    def test_relative_urls_without_public_base(self, backend: MockStorageBackend) -> None:
        store = MediaFileStore(backend)
        assert store.url_for("uploads/a.jpg") == "/uploads/a.jpg"
        assert store.key_from_url("/uploads/a.jpg") == "uploads/a.jpg"
