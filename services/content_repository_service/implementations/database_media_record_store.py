"""Media record store keeping one first-class row per asset."""

from __future__ import annotations

from inkwell_service_libs.error_handling import raise_resource_not_found
from sqlalchemy import delete, select

from services.content_repository_service.implementations.database_support import (
    DatabaseRepositoryBase,
)
from services.content_repository_service.models_db import MediaAssetRecord
from services.content_repository_service.models_domain import MediaAsset
from services.content_repository_service.protocols import MediaRecordStoreProtocol


class DatabaseMediaRecordStore(DatabaseRepositoryBase, MediaRecordStoreProtocol):
    """Media assets stored in ``media_assets``."""

    async def get(self, media_id: str) -> MediaAsset | None:
        async with self._get_session("get_media") as session:
            record = await session.get(MediaAssetRecord, media_id)
            document = record.document if record is not None else None
        return MediaAsset.model_validate(document) if document is not None else None

    async def list(self) -> list[MediaAsset]:
        async with self._get_session("list_media") as session:
            stmt = select(MediaAssetRecord.document).order_by(MediaAssetRecord.created_at.desc())
            documents = (await session.execute(stmt)).scalars().all()
        return [MediaAsset.model_validate(document) for document in documents]

    async def save(self, asset: MediaAsset) -> None:
        async with self._get_session("save_media") as session:
            await session.merge(
                MediaAssetRecord(
                    id=asset.id,
                    mime=asset.mime,
                    created_at=asset.created_at,
                    document=asset.model_dump(mode="json"),
                )
            )

    async def delete(self, media_id: str) -> None:
        async with self._get_session("delete_media") as session:
            result = await session.execute(
                delete(MediaAssetRecord).where(MediaAssetRecord.id == media_id)
            )
            if result.rowcount == 0:
                raise_resource_not_found(
                    service="content_repository_service",
                    operation="delete_media",
                    resource_type="media",
                    resource_id=media_id,
                )
