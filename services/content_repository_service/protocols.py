"""
Content Repository Service behavioral contracts and protocols.

This module defines the protocols (interfaces) that storage backends, stores,
processors and metrics must implement, enabling dependency injection and
testability.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from inkwell_common.observability_enums import OperationType
from inkwell_common.status_enums import OperationStatus

from services.content_repository_service.models_domain import (
    ContentEntry,
    ImageProbe,
    MediaAsset,
    VideoProbe,
)


class StorageBackendProtocol(Protocol):
    """Path-addressed byte store shared by entries, media records and renditions."""

    async def read(self, key: str) -> bytes:
        """
        Read the content stored at a key.

        Raises:
            InkwellError: RESOURCE_NOT_FOUND if absent, storage-unavailable codes otherwise
        """
        ...

    async def write(
        self, key: str, content: bytes | str, commit_message: str | None = None
    ) -> None:
        """Create or overwrite the content at a key. Strings are stored as UTF-8."""
        ...

    async def delete(self, key: str, commit_message: str | None = None) -> None:
        """
        Delete the content at a key.

        Raises:
            InkwellError: RESOURCE_NOT_FOUND if absent
        """
        ...

    async def exists(self, key: str) -> bool:
        ...

    async def list(self, dir_key: str) -> list[str]:
        """Return the file names directly below a directory key, or [] if it does not exist."""
        ...

    async def ensure_dir(self, dir_key: str) -> None:
        """Make sure a directory key exists. No-op where directories are implicit."""
        ...


class EntryStoreProtocol(Protocol):
    """Persistence of entries addressed by (collection, slug)."""

    async def get(self, collection: str, slug: str) -> ContentEntry | None:
        ...

    async def list(self, collection: str) -> list[ContentEntry]:
        ...

    async def insert(self, entry: ContentEntry) -> None:
        """
        Store a new entry.

        Raises:
            InkwellError: DUPLICATE_KEY if (collection, slug) is occupied
        """
        ...

    async def replace(self, entry: ContentEntry) -> None:
        """Overwrite the entry stored at its current (collection, slug)."""
        ...

    async def rename(self, entry: ContentEntry, old_slug: str) -> None:
        """
        Move an entry from old_slug to entry.slug, persisting its new state.

        Exactly one record is addressable afterwards: the one at entry.slug.

        Raises:
            InkwellError: DUPLICATE_KEY if the target slug is occupied
        """
        ...

    async def delete(self, collection: str, slug: str) -> None:
        ...


class MediaRecordStoreProtocol(Protocol):
    """Persistence of MediaAsset records."""

    async def get(self, media_id: str) -> MediaAsset | None:
        ...

    async def list(self) -> list[MediaAsset]:
        ...

    async def save(self, asset: MediaAsset) -> None:
        ...

    async def delete(self, media_id: str) -> None:
        ...


class ImageProcessorProtocol(Protocol):
    """Image probing and resizing collaborator."""

    async def probe_image(self, content: bytes) -> ImageProbe | None:
        """Return dimensions, or None when the bytes are not a decodable image."""
        ...

    async def resize_image(
        self, content: bytes, max_edge: int, quality: int, output_format: str
    ) -> bytes:
        """
        Fit the image inside a max_edge square. Never upscales.

        Raises:
            InkwellError: PROCESSING_ERROR on decode/encode failure
        """
        ...

    async def generate_placeholder(self, content: bytes, width: int) -> str:
        """Return a tiny blurred data URL used for progressive loading."""
        ...


class VideoProcessorProtocol(Protocol):
    """Video probing and poster frame extraction collaborator."""

    async def probe_video(self, content: bytes) -> VideoProbe | None:
        """Return dimensions and duration, or None when the tooling is unavailable."""
        ...

    async def extract_frame(
        self, content: bytes, timestamp_seconds: float, max_width: int
    ) -> bytes | None:
        """Return a JPEG still, or None when the tooling is unavailable."""
        ...


class MediaReferenceExtractor(Protocol):
    """Knows where one collection's content shape stores media ids."""

    collection: str

    def find_references(self, data: dict[str, Any]) -> set[str]:
        ...

    def rewrite(self, data: dict[str, Any], old_id: str, new_id: str | None) -> dict[str, Any]:
        """
        Return a copy of data with old_id replaced by new_id, or removed when
        new_id is None. The input mapping is never mutated.
        """
        ...


@runtime_checkable
class RepositoryMetricsProtocol(Protocol):
    """Protocol for repository operation metrics collection."""

    def record_operation(self, operation: OperationType, status: OperationStatus) -> None:
        ...
