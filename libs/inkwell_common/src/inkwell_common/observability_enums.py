"""
inkwell_common.observability_enums - Labels used by service metrics.
"""

from __future__ import annotations

from enum import Enum


class OperationType(str, Enum):
    CREATE_ENTRY = "create_entry"
    UPDATE_ENTRY = "update_entry"
    DELETE_ENTRY = "delete_entry"
    UPLOAD_MEDIA = "upload_media"
    UPDATE_MEDIA = "update_media"
    DELETE_MEDIA = "delete_media"
    REPLACE_MEDIA = "replace_media"
    REFERENCE_CASCADE = "reference_cascade"
