"""
Content Repository Service dependency injection configuration.
"""

from __future__ import annotations

from typing import AsyncIterator

import aiohttp
from dishka import Provider, Scope, provide
from inkwell_common.config_enums import MediaRecordMode, StorageBackendType
from inkwell_common.storage_enums import StorageKind
from prometheus_client import CollectorRegistry
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from services.content_repository_service.config import Settings, settings
from services.content_repository_service.entry_versioning import EntryRepository
from services.content_repository_service.implementations.database_entry_store import (
    DatabaseEntryStore,
)
from services.content_repository_service.implementations.database_media_record_store import (
    DatabaseMediaRecordStore,
)
from services.content_repository_service.implementations.database_support import (
    initialize_database_schema,
)
from services.content_repository_service.implementations.ffmpeg_video_processor import (
    FfmpegVideoProcessor,
)
from services.content_repository_service.implementations.media_file_store import MediaFileStore
from services.content_repository_service.implementations.pillow_image_processor import (
    PillowImageProcessor,
)
from services.content_repository_service.implementations.prometheus_repository_metrics import (
    PrometheusRepositoryMetrics,
    create_operations_counter,
)
from services.content_repository_service.implementations.storage_backend_factory import (
    create_storage_backend,
    scoped_backend,
)
from services.content_repository_service.implementations.storage_entry_store import (
    StorageEntryStore,
)
from services.content_repository_service.implementations.storage_media_record_store import (
    StorageMediaRecordStore,
)
from services.content_repository_service.media_pipeline import MediaRepository
from services.content_repository_service.protocols import (
    EntryStoreProtocol,
    ImageProcessorProtocol,
    MediaRecordStoreProtocol,
    RepositoryMetricsProtocol,
    StorageBackendProtocol,
    VideoProcessorProtocol,
)
from services.content_repository_service.reference_integrity import (
    ReferenceExtractorRegistry,
    ReferenceIntegrityScanner,
)
from services.content_repository_service.schema_registry import CollectionSchemaRegistry


def _uses_database(settings: Settings) -> bool:
    return (
        settings.STORAGE_BACKEND is StorageBackendType.DATABASE
        or settings.MEDIA_RECORD_MODE is MediaRecordMode.DATABASE
    )


class ContentRepositoryServiceProvider(Provider):
    """DI provider for Content Repository Service dependencies."""

    def __init__(self, settings_override: Settings | None = None) -> None:
        """Initialize provider, optionally with settings other than the module instance."""
        super().__init__()
        self._settings = settings_override

    @provide(scope=Scope.APP)
    def provide_settings(self) -> Settings:
        """Provide service settings."""
        return self._settings or settings

    @provide(scope=Scope.APP)
    def provide_collector_registry(self) -> CollectorRegistry:
        """Provide Prometheus collector registry."""
        return CollectorRegistry()

    @provide(scope=Scope.APP)
    def provide_repository_metrics(self, registry: CollectorRegistry) -> RepositoryMetricsProtocol:
        """Provide repository metrics implementation."""
        return PrometheusRepositoryMetrics(create_operations_counter(registry))

    @provide(scope=Scope.APP)
    async def provide_database_engine(self, settings: Settings) -> AsyncIterator[AsyncEngine]:
        """Provide async database engine, creating tables when the database is in use."""
        engine_options: dict = {"echo": False, "pool_pre_ping": True}
        if not settings.DATABASE_URL.startswith("sqlite"):
            engine_options.update(
                pool_size=settings.DATABASE_POOL_SIZE,
                max_overflow=settings.DATABASE_MAX_OVERFLOW,
            )
        engine = create_async_engine(settings.DATABASE_URL, **engine_options)
        if _uses_database(settings):
            await initialize_database_schema(engine)
        yield engine
        await engine.dispose()

    @provide(scope=Scope.APP)
    async def provide_storage_backend(
        self, settings: Settings, engine: AsyncEngine
    ) -> AsyncIterator[StorageBackendProtocol]:
        """Provide the configured storage backend; owns the GitHub HTTP session."""
        http_session = None
        if settings.STORAGE_BACKEND is StorageBackendType.GITHUB:
            http_session = aiohttp.ClientSession()
        try:
            yield create_storage_backend(settings, http_session=http_session, engine=engine)
        finally:
            if http_session is not None:
                await http_session.close()

    @provide(scope=Scope.APP)
    def provide_schema_registry(self, backend: StorageBackendProtocol) -> CollectionSchemaRegistry:
        return CollectionSchemaRegistry(scoped_backend(backend, StorageKind.FILES))

    @provide(scope=Scope.APP)
    def provide_entry_store(
        self, settings: Settings, backend: StorageBackendProtocol, engine: AsyncEngine
    ) -> EntryStoreProtocol:
        """Entries live in first-class rows in database mode, as documents otherwise."""
        if settings.STORAGE_BACKEND is StorageBackendType.DATABASE:
            return DatabaseEntryStore(engine)
        return StorageEntryStore(scoped_backend(backend, StorageKind.ENTRIES))

    @provide(scope=Scope.APP)
    def provide_media_record_store(
        self, settings: Settings, backend: StorageBackendProtocol, engine: AsyncEngine
    ) -> MediaRecordStoreProtocol:
        if settings.MEDIA_RECORD_MODE is MediaRecordMode.DATABASE:
            return DatabaseMediaRecordStore(engine)
        return StorageMediaRecordStore(scoped_backend(backend, StorageKind.MEDIA))

    @provide(scope=Scope.APP)
    def provide_media_file_store(
        self, settings: Settings, backend: StorageBackendProtocol
    ) -> MediaFileStore:
        return MediaFileStore(
            scoped_backend(backend, StorageKind.MEDIA),
            public_base_url=settings.MEDIA_PUBLIC_BASE_URL,
            upload_prefix=settings.MEDIA_UPLOAD_PREFIX,
        )

    @provide(scope=Scope.APP)
    def provide_image_processor(self) -> ImageProcessorProtocol:
        return PillowImageProcessor()

    @provide(scope=Scope.APP)
    def provide_video_processor(self, settings: Settings) -> VideoProcessorProtocol:
        return FfmpegVideoProcessor(
            ffmpeg_binary=settings.FFMPEG_BINARY,
            ffprobe_binary=settings.FFPROBE_BINARY,
            timeout_seconds=settings.VIDEO_PROCESSING_TIMEOUT_SECONDS,
        )

    @provide(scope=Scope.APP)
    def provide_reference_extractors(self) -> ReferenceExtractorRegistry:
        return ReferenceExtractorRegistry.with_builtin_extractors()

    @provide(scope=Scope.APP)
    def provide_entry_repository(
        self,
        store: EntryStoreProtocol,
        schemas: CollectionSchemaRegistry,
        metrics: RepositoryMetricsProtocol,
    ) -> EntryRepository:
        return EntryRepository(store, schemas, metrics)

    @provide(scope=Scope.APP)
    def provide_reference_scanner(
        self,
        entries: EntryRepository,
        extractors: ReferenceExtractorRegistry,
        metrics: RepositoryMetricsProtocol,
    ) -> ReferenceIntegrityScanner:
        return ReferenceIntegrityScanner(entries, extractors, metrics)

    @provide(scope=Scope.APP)
    def provide_media_repository(
        self,
        records: MediaRecordStoreProtocol,
        files: MediaFileStore,
        image_processor: ImageProcessorProtocol,
        video_processor: VideoProcessorProtocol,
        scanner: ReferenceIntegrityScanner,
        settings: Settings,
        metrics: RepositoryMetricsProtocol,
    ) -> MediaRepository:
        return MediaRepository(
            records,
            files,
            image_processor,
            video_processor,
            scanner,
            settings,
            metrics,
        )
