"""
inkwell_common.error_enums - Centralized error code definitions.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    DUPLICATE_KEY = "DUPLICATE_KEY"  # Slug or id already taken
    CONFLICT = "CONFLICT"  # Stale concurrency token
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"

    # Backend connectivity (StorageUnavailable family)
    TIMEOUT = "TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"

    PROCESSING_ERROR = "PROCESSING_ERROR"  # Image/video processing failures


STORAGE_UNAVAILABLE_CODES: frozenset[ErrorCode] = frozenset(
    {
        ErrorCode.TIMEOUT,
        ErrorCode.CONNECTION_ERROR,
        ErrorCode.AUTHENTICATION_ERROR,
        ErrorCode.CONFIGURATION_ERROR,
        ErrorCode.EXTERNAL_SERVICE_ERROR,
    }
)
