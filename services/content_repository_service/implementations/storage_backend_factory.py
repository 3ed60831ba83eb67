"""Selection of the storage backend configured for the service."""

from __future__ import annotations

import aiohttp
from inkwell_common.config_enums import StorageBackendType
from inkwell_common.storage_enums import StorageKind
from inkwell_service_libs.error_handling import raise_configuration_error
from inkwell_service_libs.logging_utils import create_service_logger
from sqlalchemy.ext.asyncio import AsyncEngine

from services.content_repository_service.config import Settings
from services.content_repository_service.implementations.database_storage_backend import (
    DatabaseStorageBackend,
)
from services.content_repository_service.implementations.filesystem_storage_backend import (
    FileSystemStorageBackend,
)
from services.content_repository_service.implementations.github_storage_backend import (
    GitHubStorageBackend,
)
from services.content_repository_service.protocols import StorageBackendProtocol

logger = create_service_logger("content_repository.storage.factory")


def create_storage_backend(
    settings: Settings,
    http_session: aiohttp.ClientSession | None = None,
    engine: AsyncEngine | None = None,
) -> StorageBackendProtocol:
    """Build the backend named by STORAGE_BACKEND."""
    backend_type = settings.STORAGE_BACKEND

    if backend_type is StorageBackendType.FILESYSTEM:
        backend: StorageBackendProtocol = FileSystemStorageBackend(settings.FILESYSTEM_ROOT)
    elif backend_type is StorageBackendType.GITHUB:
        if http_session is None or not settings.GITHUB_TOKEN or not settings.GITHUB_REPO:
            raise_configuration_error(
                service=settings.SERVICE_NAME,
                operation="create_storage_backend",
                config_key="GITHUB_TOKEN",
                message="GitHub backend needs an HTTP session, GITHUB_TOKEN and GITHUB_REPO",
            )
        backend = GitHubStorageBackend(
            http_session=http_session,
            token=settings.GITHUB_TOKEN,
            repo=settings.GITHUB_REPO,
            branch=settings.GITHUB_BRANCH,
            api_url=settings.GITHUB_API_URL,
            timeout_seconds=settings.GITHUB_TIMEOUT_SECONDS,
        )
    elif backend_type is StorageBackendType.DATABASE:
        if engine is None:
            raise_configuration_error(
                service=settings.SERVICE_NAME,
                operation="create_storage_backend",
                config_key="DATABASE_URL",
                message="Database backend needs an engine",
            )
        backend = DatabaseStorageBackend(engine)
    else:
        raise_configuration_error(
            service=settings.SERVICE_NAME,
            operation="create_storage_backend",
            config_key="STORAGE_BACKEND",
            message=f"Unsupported storage backend '{backend_type}'",
        )

    logger.info("Storage backend selected", backend=backend_type.value)
    return backend


def scoped_backend(backend: StorageBackendProtocol, kind: StorageKind) -> StorageBackendProtocol:
    """Return the backend addressing the given kind of document.

    Only the database backend separates kinds; path-based backends keep
    every kind under one tree.
    """
    if isinstance(backend, DatabaseStorageBackend):
        return backend.with_kind(kind)
    return backend
