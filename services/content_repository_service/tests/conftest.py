"""Shared fixtures for Content Repository Service tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from services.content_repository_service.config import Settings
from services.content_repository_service.entry_versioning import EntryRepository
from services.content_repository_service.implementations.media_file_store import MediaFileStore
from services.content_repository_service.implementations.mock_storage_backend import (
    MockStorageBackend,
)
from services.content_repository_service.implementations.pillow_image_processor import (
    PillowImageProcessor,
)
from services.content_repository_service.implementations.storage_entry_store import (
    StorageEntryStore,
)
from services.content_repository_service.implementations.storage_media_record_store import (
    StorageMediaRecordStore,
)
from services.content_repository_service.media_pipeline import MediaRepository
from services.content_repository_service.reference_integrity import (
    ReferenceExtractorRegistry,
    ReferenceIntegrityScanner,
)
from services.content_repository_service.schema_registry import CollectionSchemaRegistry
from services.content_repository_service.tests.fakes import (
    FakeVideoProcessor,
    RecordingMetrics,
    SteppingClock,
    make_image_bytes,
)


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    return make_image_bytes


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        FILESYSTEM_ROOT=tmp_path / "store",
        MEDIA_PUBLIC_BASE_URL="https://cdn.example.test",
        GENERATE_BLUR_PLACEHOLDER=True,
    )


@pytest.fixture
def backend() -> MockStorageBackend:
    return MockStorageBackend()


@pytest.fixture
def schemas() -> CollectionSchemaRegistry:
    return CollectionSchemaRegistry()


@pytest.fixture
def entry_repository(
    backend: MockStorageBackend,
    schemas: CollectionSchemaRegistry,
    metrics: RecordingMetrics,
    clock: SteppingClock,
) -> EntryRepository:
    return EntryRepository(StorageEntryStore(backend), schemas, metrics, clock=clock)


@pytest.fixture
def scanner(entry_repository: EntryRepository) -> ReferenceIntegrityScanner:
    return ReferenceIntegrityScanner(
        entry_repository, ReferenceExtractorRegistry.with_builtin_extractors()
    )


@pytest.fixture
def video_processor() -> FakeVideoProcessor:
    return FakeVideoProcessor()


@pytest.fixture
def media_repository(
    backend: MockStorageBackend,
    scanner: ReferenceIntegrityScanner,
    video_processor: FakeVideoProcessor,
    test_settings: Settings,
    metrics: RecordingMetrics,
    clock: SteppingClock,
) -> MediaRepository:
    return MediaRepository(
        records=StorageMediaRecordStore(backend),
        files=MediaFileStore(backend, public_base_url="https://cdn.example.test"),
        image_processor=PillowImageProcessor(),
        video_processor=video_processor,
        scanner=scanner,
        settings=test_settings,
        metrics=metrics,
        clock=clock,
    )
