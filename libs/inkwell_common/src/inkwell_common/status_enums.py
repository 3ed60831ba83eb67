"""Status enums for the entry lifecycle and repository operations.

EntryStatus: Entry publishing state machine (draft, published, archived).
EntryVisibility: Public/private exposure of an entry.
OperationStatus: Outcome labels recorded by repository metrics.
"""

from __future__ import annotations

from enum import Enum


class EntryStatus(str, Enum):
    """Lifecycle status of a content entry.

    Only PUBLISHED entries may carry pending (unpublished) edits.
    """

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class EntryVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class OperationStatus(str, Enum):
    """Outcome of a repository operation, used as a metrics label."""

    SUCCESS = "success"
    FAILED = "failed"
    NOT_FOUND = "not_found"
    ERROR = "error"
