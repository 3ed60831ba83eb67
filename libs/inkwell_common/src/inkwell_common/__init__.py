"""
Inkwell Common Core Package.
"""

from .config_enums import Environment, MediaRecordMode, StorageBackendType
from .error_enums import STORAGE_UNAVAILABLE_CODES, ErrorCode
from .media_enums import ActiveVariant, VariantTier
from .models.error_models import ErrorDetail
from .observability_enums import OperationType
from .status_enums import EntryStatus, EntryVisibility, OperationStatus
from .storage_enums import StorageKind

__all__ = [
    "ActiveVariant",
    "EntryStatus",
    "EntryVisibility",
    "Environment",
    "ErrorCode",
    "ErrorDetail",
    "MediaRecordMode",
    "OperationStatus",
    "OperationType",
    "STORAGE_UNAVAILABLE_CODES",
    "StorageBackendType",
    "StorageKind",
    "VariantTier",
]
