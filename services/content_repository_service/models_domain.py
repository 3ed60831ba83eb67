"""
Domain models for the Content Repository Service.

Entries and media assets are plain pydantic models. They serialize to the
JSON documents persisted through the storage backends and to the rows of
the database stores.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from inkwell_common.media_enums import ActiveVariant, VariantTier
from inkwell_common.status_enums import EntryStatus, EntryVisibility
from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return uuid4().hex


class ContentEntry(BaseModel):
    """One structured content record inside a collection."""

    id: str = Field(default_factory=new_id)
    collection: str
    slug: str
    status: EntryStatus = EntryStatus.DRAFT
    visibility: EntryVisibility = EntryVisibility.PUBLIC
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    published_at: datetime | None = None
    scheduled_at: datetime | None = None
    author_id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    pending_data: dict[str, Any] | None = None
    seo: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    external: dict[str, Any] | None = None

    @property
    def title(self) -> str:
        """Human readable label used in commit messages and usage reports."""
        title = self.data.get("title")
        return title if isinstance(title, str) and title else self.slug


class EntryUpdate(BaseModel):
    """Partial update accepted by EntryRepository.update_entry."""

    slug: str | None = None
    status: EntryStatus | None = None
    data: dict[str, Any] | None = None


class EntryListResult(BaseModel):
    entries: list[ContentEntry]
    total: int


class MediaVariant(BaseModel):
    """A stored rendition: one generated tier or the retained original."""

    filename: str
    path: str
    url: str
    mime: str | None = None
    width: int | None = None
    height: int | None = None
    size: int


class MediaPoster(BaseModel):
    """Still frame extracted from time-based media."""

    url: str
    path: str
    width: int | None = None
    height: int | None = None


class MediaAsset(BaseModel):
    """A binary media item and its derived renditions."""

    id: str = Field(default_factory=new_id)
    filename: str
    original_name: str
    slug: str

    # Primary representation, mirrors the active variant
    path: str
    url: str
    mime: str
    size: int
    width: int | None = None
    height: int | None = None
    duration: float | None = None

    original: MediaVariant | None = None
    variants: dict[VariantTier, MediaVariant] = Field(default_factory=dict)
    active_variant: ActiveVariant = ActiveVariant.ORIGINAL
    poster: MediaPoster | None = None

    title: str = ""
    alt: str = ""
    caption: str | None = None
    description: str | None = None
    credit: str | None = None
    tags: list[str] = Field(default_factory=list)

    hash: str
    blur_data_url: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class MediaUpdate(BaseModel):
    """Partial media update. Only explicitly set fields are applied."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    alt: str | None = None
    caption: str | None = None
    description: str | None = None
    credit: str | None = None
    tags: list[str] | None = None
    active_variant: ActiveVariant | None = None


class ImageProbe(BaseModel):
    width: int
    height: int
    format: str | None = None


class VideoProbe(BaseModel):
    width: int
    height: int
    duration: float | None = None


class ProcessingDegradation(BaseModel):
    """A derived artifact that could not be produced during upload."""

    step: str
    reason: str


class MediaUploadResult(BaseModel):
    asset: MediaAsset
    degradations: list[ProcessingDegradation] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.degradations)


class ReferenceCascadeReport(BaseModel):
    """Outcome of a reference rewrite across all entries."""

    updated_entries: int = 0
    entries: list[str] = Field(default_factory=list)  # "<collection>/<slug>"


class DeleteMediaResult(BaseModel):
    success: bool
    updated_entries: int


class ReplaceMediaResult(BaseModel):
    asset: MediaAsset
    updated_entries: int
    degradations: list[ProcessingDegradation] = Field(default_factory=list)


class BulkUpdateResult(BaseModel):
    modified: int
    failed: int
    failed_ids: list[str] = Field(default_factory=list)


class MediaUsage(BaseModel):
    collection: str
    slug: str
    title: str


class DanglingReference(BaseModel):
    collection: str
    slug: str
    media_ids: list[str]
