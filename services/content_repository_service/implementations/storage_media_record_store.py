"""Media record store persisting one JSON document per asset through a storage backend."""

from __future__ import annotations

import asyncio

from inkwell_common.error_enums import ErrorCode
from inkwell_service_libs.error_handling import InkwellError

from services.content_repository_service.models_domain import MediaAsset
from services.content_repository_service.protocols import (
    MediaRecordStoreProtocol,
    StorageBackendProtocol,
)

MEDIA_RECORDS_DIR = "content/media"


def media_record_key(media_id: str) -> str:
    return f"{MEDIA_RECORDS_DIR}/{media_id}.json"


class StorageMediaRecordStore(MediaRecordStoreProtocol):
    """Media records stored at ``content/media/<id>.json``."""

    def __init__(self, backend: StorageBackendProtocol) -> None:
        self._backend = backend

    async def get(self, media_id: str) -> MediaAsset | None:
        try:
            raw = await self._backend.read(media_record_key(media_id))
        except InkwellError as e:
            if e.error_code == ErrorCode.RESOURCE_NOT_FOUND.value:
                return None
            raise
        return MediaAsset.model_validate_json(raw)

    async def list(self) -> list[MediaAsset]:
        names = [n for n in await self._backend.list(MEDIA_RECORDS_DIR) if n.endswith(".json")]
        documents = await asyncio.gather(
            *(self._backend.read(f"{MEDIA_RECORDS_DIR}/{name}") for name in names)
        )
        return [MediaAsset.model_validate_json(raw) for raw in documents]

    async def save(self, asset: MediaAsset) -> None:
        await self._backend.write(
            media_record_key(asset.id),
            asset.model_dump_json(indent=2),
            f"Save media: {asset.filename}",
        )

    async def delete(self, media_id: str) -> None:
        await self._backend.delete(media_record_key(media_id), f"Delete media: {media_id}")
