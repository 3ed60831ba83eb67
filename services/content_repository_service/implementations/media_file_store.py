"""Storage of media renditions (primary file, variants, originals, posters)."""

from __future__ import annotations

from inkwell_common.error_enums import ErrorCode
from inkwell_service_libs.error_handling import InkwellError
from inkwell_service_libs.logging_utils import create_service_logger

from services.content_repository_service.implementations.storage_keys import (
    join_key,
    normalize_key,
)
from services.content_repository_service.protocols import StorageBackendProtocol

logger = create_service_logger("content_repository.media.files")

VARIANTS_AREA = "variants"
ORIGINALS_AREA = "originals"
POSTERS_AREA = "posters"


class MediaFileStore:
    """
    Writes rendition bytes under ``<upload_prefix>/[area/]<filename>``.

    ``path`` is always the storage key and ``url`` the public address built
    from it, so deletions can address files the same way they were written.
    """

    def __init__(
        self,
        backend: StorageBackendProtocol,
        public_base_url: str = "",
        upload_prefix: str = "uploads",
    ) -> None:
        self._backend = backend
        self.public_base_url = public_base_url.rstrip("/")
        self.upload_prefix = normalize_key(upload_prefix)

    def key_for(self, filename: str, area: str | None = None) -> str:
        return join_key(self.upload_prefix, area or "", filename)

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{normalize_key(key)}"

    def key_from_url(self, url: str) -> str:
        if self.public_base_url and url.startswith(self.public_base_url):
            url = url[len(self.public_base_url) :]
        return normalize_key(url)

    async def save(
        self, filename: str, content: bytes, area: str | None = None
    ) -> tuple[str, str]:
        """Persist one rendition and return its (path, url)."""
        key = self.key_for(filename, area)
        await self._backend.write(key, content, f"Upload media: {filename}")
        return key, self.url_for(key)

    async def delete(self, path: str | None, url: str | None = None) -> bool:
        """Delete one rendition. Returns False when it was already gone."""
        key = normalize_key(path) if path else self.key_from_url(url or "")
        if not key:
            return False
        try:
            await self._backend.delete(key, f"Delete media file: {key}")
        except InkwellError as e:
            if e.error_code != ErrorCode.RESOURCE_NOT_FOUND.value:
                raise
            logger.warning("Media file already missing", key=key)
            return False
        return True
