"""SQLAlchemy models for the Content Repository Service."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from inkwell_common.storage_enums import StorageKind
from sqlalchemy import JSON, DateTime, LargeBinary, String, Text, UniqueConstraint, func
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all SQLAlchemy models for the Content Repository Service."""

    pass


class StoredDocumentMixin:
    """One logical storage file per row, keyed by its path."""

    file_path: Mapped[str] = mapped_column(String(1024), primary_key=True)
    content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    commit_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )


class EntryDocument(StoredDocumentMixin, Base):
    __tablename__ = "storage_entries"


class MediaDocument(StoredDocumentMixin, Base):
    __tablename__ = "storage_media"


class CategoryDocument(StoredDocumentMixin, Base):
    __tablename__ = "storage_categories"


class UserDocument(StoredDocumentMixin, Base):
    __tablename__ = "storage_users"


class FileDocument(StoredDocumentMixin, Base):
    __tablename__ = "storage_files"


DOCUMENT_MODELS: dict[StorageKind, type[StoredDocumentMixin]] = {
    StorageKind.ENTRIES: EntryDocument,
    StorageKind.MEDIA: MediaDocument,
    StorageKind.CATEGORIES: CategoryDocument,
    StorageKind.USERS: UserDocument,
    StorageKind.FILES: FileDocument,
}


class ContentEntryRecord(Base):
    """First-class entry row used when entries live directly in the database."""

    __tablename__ = "content_entries"
    __table_args__ = (UniqueConstraint("collection", "slug", name="uq_content_entries_slug"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    collection: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Full serialized ContentEntry
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)


class MediaAssetRecord(Base):
    """First-class media row used in database media record mode."""

    __tablename__ = "media_assets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    mime: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    # Full serialized MediaAsset
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
