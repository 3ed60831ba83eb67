"""
Media pipeline: upload processing and media lifecycle operations.

Uploads are hashed, resized into the configured variant tiers (never
upscaling) and stored through the media file store. Processing failures
never abort an upload; they are reported as degradations. Deleting or
replacing an asset cascades through the reference integrity scanner so no
entry keeps pointing at a missing asset.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, TypeVar
from uuid import UUID

from inkwell_common.error_enums import ErrorCode
from inkwell_common.media_enums import ActiveVariant, VariantTier
from inkwell_common.observability_enums import OperationType
from inkwell_service_libs.error_handling import InkwellError, raise_resource_not_found
from inkwell_service_libs.logging_utils import bind_operation_context, create_service_logger

from services.content_repository_service.config import Settings
from services.content_repository_service.implementations.media_file_store import (
    ORIGINALS_AREA,
    POSTERS_AREA,
    VARIANTS_AREA,
    MediaFileStore,
)
from services.content_repository_service.models_domain import (
    BulkUpdateResult,
    DanglingReference,
    DeleteMediaResult,
    ImageProbe,
    MediaAsset,
    MediaPoster,
    MediaUpdate,
    MediaUploadResult,
    MediaUsage,
    MediaVariant,
    ProcessingDegradation,
    ReplaceMediaResult,
    new_id,
    utc_now,
)
from services.content_repository_service.operation_tracking import track_operation
from services.content_repository_service.protocols import (
    ImageProcessorProtocol,
    MediaRecordStoreProtocol,
    RepositoryMetricsProtocol,
    VideoProcessorProtocol,
)
from services.content_repository_service.reference_integrity import ReferenceIntegrityScanner
from services.content_repository_service.slugs import (
    compute_content_hash,
    extension_for_mime,
    generate_short_id,
    is_processable_image,
    is_video,
    sanitize_filename,
)

logger = create_service_logger("content_repository.media")

SERVICE = "content_repository_service"
POSTER_EPSILON_SECONDS = 0.1

T = TypeVar("T")


def get_media_url(asset: MediaAsset, variant: ActiveVariant | VariantTier | None = None) -> str:
    """URL of a specific rendition, falling back to the primary URL."""
    if variant is None:
        return asset.url
    if variant == ActiveVariant.ORIGINAL:
        return asset.original.url if asset.original else asset.url
    rendition = asset.variants.get(VariantTier(variant.value))
    return rendition.url if rendition else asset.url


class _UploadContext:
    """Naming and bookkeeping shared by the steps of one upload."""

    def __init__(self, content: bytes, original_name: str, mime: str) -> None:
        self.content = content
        self.original_name = original_name
        self.mime = mime
        self.base_name = sanitize_filename(original_name) or "file"
        self.short_id = generate_short_id()
        self.hash = compute_content_hash(content)
        self.degradations: list[ProcessingDegradation] = []

    @property
    def slug(self) -> str:
        return f"{self.base_name}-{self.short_id}"

    def filename(self, extension: str, suffix: str | None = None) -> str:
        return f"{self.slug}-{suffix}{extension}" if suffix else f"{self.slug}{extension}"

    @property
    def raw_filename(self) -> str:
        return self.filename(extension_for_mime(self.mime, self.original_name))


class MediaRepository:
    """Upload pipeline plus get/update/delete/replace of media assets."""

    def __init__(
        self,
        records: MediaRecordStoreProtocol,
        files: MediaFileStore,
        image_processor: ImageProcessorProtocol,
        video_processor: VideoProcessorProtocol,
        scanner: ReferenceIntegrityScanner,
        settings: Settings,
        metrics: RepositoryMetricsProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._records = records
        self._files = files
        self._images = image_processor
        self._videos = video_processor
        self._scanner = scanner
        self._settings = settings
        self._metrics = metrics
        self._clock = clock

    # ------------------------------------------------------------------ reads

    async def get_media(self, media_id: str, correlation_id: UUID | None = None) -> MediaAsset:
        asset = await self._records.get(media_id)
        if asset is None:
            raise_resource_not_found(
                service=SERVICE,
                operation="get_media",
                resource_type="media",
                resource_id=media_id,
                correlation_id=correlation_id,
            )
        return asset

    async def get_media_by_ids(self, media_ids: list[str]) -> list[MediaAsset]:
        """Assets in request order; unknown ids are skipped."""
        assets = await asyncio.gather(*(self._records.get(media_id) for media_id in media_ids))
        return [asset for asset in assets if asset is not None]

    async def list_media(
        self,
        mime_prefix: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[MediaAsset]:
        assets = await self._records.list()
        if mime_prefix:
            assets = [asset for asset in assets if asset.mime.startswith(mime_prefix)]
        assets.sort(key=lambda asset: asset.created_at, reverse=True)
        start = offset or 0
        return assets[start : start + limit] if limit is not None else assets[start:]

    async def find_media_usage(self, media_id: str) -> list[MediaUsage]:
        return await self._scanner.find_media_usage(media_id)

    async def find_dangling_references(self) -> list[DanglingReference]:
        known = {asset.id for asset in await self._records.list()}
        return await self._scanner.find_dangling_references(known)

    # ----------------------------------------------------------------- upload

    async def _attempt(
        self,
        upload: _UploadContext,
        step: str,
        action: Callable[[], Awaitable[T]],
    ) -> T | None:
        """Run one processing step, downgrading PROCESSING_ERROR to a degradation."""
        try:
            return await action()
        except InkwellError as e:
            if e.error_code != ErrorCode.PROCESSING_ERROR.value:
                raise
            self._degrade(upload, step, e.error_detail.message)
            return None

    def _degrade(self, upload: _UploadContext, step: str, reason: str) -> None:
        upload.degradations.append(ProcessingDegradation(step=step, reason=reason))
        logger.warning("Media processing degraded", step=step, reason=reason)

    async def upload_media(
        self,
        content: bytes,
        original_name: str,
        mime: str,
        correlation_id: UUID | None = None,
    ) -> MediaUploadResult:
        """
        Store an upload and its derived renditions.

        Raises:
            InkwellError: only for storage failures; processing failures are
                returned as degradations on the result
        """
        bind_operation_context("upload_media", correlation_id, original_name=original_name)
        with track_operation(self._metrics, OperationType.UPLOAD_MEDIA):
            upload = _UploadContext(content, original_name, mime)

            if is_processable_image(mime):
                asset = await self._upload_image(upload)
            elif is_video(mime):
                asset = await self._upload_video(upload)
            else:
                asset = await self._upload_unprocessed(upload)

            await self._records.save(asset)
            logger.info(
                "Media uploaded",
                media_id=asset.id,
                filename=asset.filename,
                mime=asset.mime,
                size=asset.size,
                variants=sorted(tier.value for tier in asset.variants),
                degraded=bool(upload.degradations),
            )
            return MediaUploadResult(asset=asset, degradations=upload.degradations)

    async def _store_raw(
        self, upload: _UploadContext, probe: ImageProbe | None, area: str | None = None
    ) -> MediaVariant:
        filename = upload.raw_filename
        path, url = await self._files.save(filename, upload.content, area)
        return MediaVariant(
            filename=filename,
            path=path,
            url=url,
            mime=upload.mime,
            width=probe.width if probe else None,
            height=probe.height if probe else None,
            size=len(upload.content),
        )

    def _new_asset(self, upload: _UploadContext, primary: MediaVariant, **fields) -> MediaAsset:
        now = self._clock()
        return MediaAsset(
            id=new_id(),
            filename=primary.filename,
            original_name=upload.original_name,
            slug=upload.slug,
            path=primary.path,
            url=primary.url,
            mime=primary.mime or upload.mime,
            size=primary.size,
            width=primary.width,
            height=primary.height,
            title=upload.base_name.replace("-", " "),
            hash=upload.hash,
            created_at=now,
            updated_at=now,
            **fields,
        )

    async def _upload_image(self, upload: _UploadContext) -> MediaAsset:
        probe = await self._attempt(
            upload, "probe_image", lambda: self._images.probe_image(upload.content)
        )
        if probe is None:
            if not upload.degradations:
                self._degrade(upload, "probe_image", "bytes could not be decoded as an image")
            return await self._upload_unprocessed(upload, probe_first=False)

        output_mime = "image/png" if upload.mime == "image/png" else "image/jpeg"
        output_format = "PNG" if output_mime == "image/png" else "JPEG"
        extension = extension_for_mime(output_mime)
        longest_edge = max(probe.width, probe.height)
        primary_tier = self._settings.PRIMARY_VARIANT

        variants: dict[VariantTier, MediaVariant] = {}
        for tier, tier_config in self._settings.ordered_variant_tiers:
            if longest_edge <= tier_config.max_edge:
                continue

            rendition = await self._attempt(
                upload,
                f"variant:{tier.value}",
                lambda cfg=tier_config: self._images.resize_image(
                    upload.content, cfg.max_edge, cfg.quality, output_format
                ),
            )
            if rendition is None:
                continue

            dims = await self._attempt(
                upload,
                f"probe_variant:{tier.value}",
                lambda r=rendition: self._images.probe_image(r),
            )
            if tier is primary_tier:
                filename = upload.filename(extension)
                path, url = await self._files.save(filename, rendition)
            else:
                filename = upload.filename(extension, tier.value)
                path, url = await self._files.save(filename, rendition, VARIANTS_AREA)
            variants[tier] = MediaVariant(
                filename=filename,
                path=path,
                url=url,
                mime=output_mime,
                width=dims.width if dims else None,
                height=dims.height if dims else None,
                size=len(rendition),
            )

        primary = variants.get(primary_tier)
        if primary is None:
            # Source too small for the primary tier: serve the upload itself
            original = await self._store_raw(upload, probe)
            primary, active = original, ActiveVariant.ORIGINAL
        else:
            active = ActiveVariant(primary_tier.value)
            original = None
            if self._settings.RETAIN_ORIGINAL:
                original = await self._store_raw(upload, probe, ORIGINALS_AREA)

        blur_data_url = None
        if self._settings.GENERATE_BLUR_PLACEHOLDER:
            blur_data_url = await self._attempt(
                upload,
                "blur_placeholder",
                lambda: self._images.generate_placeholder(
                    upload.content, self._settings.BLUR_PLACEHOLDER_WIDTH
                ),
            )

        return self._new_asset(
            upload,
            primary,
            original=original,
            variants=variants,
            active_variant=active,
            blur_data_url=blur_data_url,
        )

    async def _upload_video(self, upload: _UploadContext) -> MediaAsset:
        probe = await self._attempt(
            upload, "probe_video", lambda: self._videos.probe_video(upload.content)
        )
        if probe is None and not upload.degradations:
            self._degrade(upload, "probe_video", "video tooling unavailable")

        timestamp = self._settings.VIDEO_POSTER_TIMESTAMP_SECONDS
        if probe is not None and probe.duration is not None:
            timestamp = min(timestamp, probe.duration - POSTER_EPSILON_SECONDS)
        timestamp = max(0.0, timestamp)

        degradations_before = len(upload.degradations)
        frame = await self._attempt(
            upload,
            "poster",
            lambda: self._videos.extract_frame(
                upload.content, timestamp, self._settings.VIDEO_POSTER_MAX_WIDTH
            ),
        )

        poster = None
        blur_data_url = None
        if frame is None:
            if len(upload.degradations) == degradations_before:
                self._degrade(upload, "poster", "frame extraction unavailable")
        else:
            poster_name = upload.filename(".jpg", "poster")
            poster_path, poster_url = await self._files.save(poster_name, frame, POSTERS_AREA)
            poster_dims = await self._attempt(
                upload, "probe_poster", lambda: self._images.probe_image(frame)
            )
            poster = MediaPoster(
                url=poster_url,
                path=poster_path,
                width=poster_dims.width if poster_dims else None,
                height=poster_dims.height if poster_dims else None,
            )
            if self._settings.GENERATE_BLUR_PLACEHOLDER:
                blur_data_url = await self._attempt(
                    upload,
                    "blur_placeholder",
                    lambda: self._images.generate_placeholder(
                        frame, self._settings.BLUR_PLACEHOLDER_WIDTH
                    ),
                )

        dims = ImageProbe(width=probe.width, height=probe.height) if probe else None
        original = await self._store_raw(upload, dims)
        return self._new_asset(
            upload,
            original,
            original=original,
            active_variant=ActiveVariant.ORIGINAL,
            duration=probe.duration if probe else None,
            poster=poster,
            blur_data_url=blur_data_url,
        )

    async def _upload_unprocessed(
        self, upload: _UploadContext, probe_first: bool = True
    ) -> MediaAsset:
        probe = None
        if probe_first:
            probe = await self._attempt(
                upload, "probe_image", lambda: self._images.probe_image(upload.content)
            )
        original = await self._store_raw(upload, probe)
        return self._new_asset(
            upload, original, original=original, active_variant=ActiveVariant.ORIGINAL
        )

    # ------------------------------------------------------------- lifecycle

    async def update_media(
        self,
        media_id: str,
        updates: MediaUpdate,
        correlation_id: UUID | None = None,
    ) -> MediaAsset:
        """
        Apply metadata edits and optionally switch the active variant.

        Switching rewrites the primary path/url/size/width/height from the
        chosen rendition. A tier that was never generated leaves the current
        representation in place.
        """
        bind_operation_context("update_media", correlation_id, media_id=media_id)
        with track_operation(self._metrics, OperationType.UPDATE_MEDIA):
            asset = await self.get_media(media_id, correlation_id)

            changes = updates.model_dump(exclude_unset=True)
            active = changes.pop("active_variant", None)
            for required_text in ("title", "alt"):
                if changes.get(required_text, "") is None:
                    changes.pop(required_text)

            if active is not None and active != asset.active_variant:
                rendition = (
                    asset.original
                    if active is ActiveVariant.ORIGINAL
                    else asset.variants.get(active.tier)
                )
                if rendition is None:
                    logger.warning(
                        "Requested variant was never generated, keeping current",
                        media_id=media_id,
                        requested=active.value,
                        current=asset.active_variant.value,
                    )
                else:
                    changes.update(
                        active_variant=active,
                        filename=rendition.filename,
                        path=rendition.path,
                        url=rendition.url,
                        mime=rendition.mime or asset.mime,
                        size=rendition.size,
                        width=rendition.width,
                        height=rendition.height,
                    )

            changes["updated_at"] = self._clock()
            updated = asset.model_copy(update=changes)
            await self._records.save(updated)
            logger.info(
                "Media updated",
                media_id=media_id,
                fields=sorted(key for key in changes if key != "updated_at"),
            )
            return updated

    async def restore_to_original(
        self, media_id: str, correlation_id: UUID | None = None
    ) -> MediaAsset:
        return await self.update_media(
            media_id, MediaUpdate(active_variant=ActiveVariant.ORIGINAL), correlation_id
        )

    async def bulk_update_media(
        self, media_ids: list[str], updates: MediaUpdate
    ) -> BulkUpdateResult:
        """Apply one update to many assets; missing or invalid ones are counted, not raised."""
        modified = 0
        failed_ids: list[str] = []
        for media_id in media_ids:
            try:
                await self.update_media(media_id, updates)
            except InkwellError as e:
                if e.is_storage_unavailable:
                    raise
                logger.warning("Bulk media update skipped asset", media_id=media_id, error=str(e))
                failed_ids.append(media_id)
                continue
            modified += 1
        return BulkUpdateResult(modified=modified, failed=len(failed_ids), failed_ids=failed_ids)

    async def _delete_files(self, asset: MediaAsset) -> int:
        locations: dict[str, str | None] = {asset.path or asset.url: asset.path}
        renditions = [asset.original, *asset.variants.values()]
        for rendition in renditions:
            if rendition is not None:
                locations.setdefault(rendition.path or rendition.url, rendition.path)
        if asset.poster is not None:
            locations.setdefault(asset.poster.path or asset.poster.url, asset.poster.path)

        deleted = 0
        for location, path in locations.items():
            if await self._files.delete(path, location):
                deleted += 1
        return deleted

    async def delete_media(
        self, media_id: str, correlation_id: UUID | None = None
    ) -> DeleteMediaResult:
        """Remove references, every stored rendition and the record of an asset."""
        bind_operation_context("delete_media", correlation_id, media_id=media_id)
        with track_operation(self._metrics, OperationType.DELETE_MEDIA):
            asset = await self.get_media(media_id, correlation_id)
            report = await self._scanner.remove_media_references(media_id, correlation_id)
            deleted_files = await self._delete_files(asset)
            await self._records.delete(media_id)
            logger.info(
                "Media deleted",
                media_id=media_id,
                deleted_files=deleted_files,
                updated_entries=report.updated_entries,
            )
            return DeleteMediaResult(success=True, updated_entries=report.updated_entries)

    async def replace_media(
        self,
        old_media_id: str,
        content: bytes,
        original_name: str,
        mime: str,
        correlation_id: UUID | None = None,
    ) -> ReplaceMediaResult:
        """Upload a new asset, repoint every reference to it, then delete the old asset."""
        with track_operation(self._metrics, OperationType.REPLACE_MEDIA):
            old_asset = await self.get_media(old_media_id, correlation_id)
            uploaded = await self.upload_media(content, original_name, mime, correlation_id)
            bind_operation_context("replace_media", correlation_id, media_id=old_media_id)

            report = await self._scanner.replace_media_references(
                old_media_id, uploaded.asset.id, correlation_id
            )
            await self._delete_files(old_asset)
            await self._records.delete(old_media_id)
            logger.info(
                "Media replaced",
                old_media_id=old_media_id,
                new_media_id=uploaded.asset.id,
                updated_entries=report.updated_entries,
            )
            return ReplaceMediaResult(
                asset=uploaded.asset,
                updated_entries=report.updated_entries,
                degradations=uploaded.degradations,
            )
