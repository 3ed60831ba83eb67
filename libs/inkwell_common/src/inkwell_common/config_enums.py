"""
inkwell_common.config_enums - Enums related to service configuration.
"""

from __future__ import annotations

from enum import Enum


class Environment(str, Enum):
    """Defines application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class StorageBackendType(str, Enum):
    """Selectable Storage Backend implementations."""

    FILESYSTEM = "filesystem"
    GITHUB = "github"
    DATABASE = "database"


class MediaRecordMode(str, Enum):
    """How MediaAsset records are persisted.

    STORAGE serializes each record as a JSON document through the Storage Backend.
    DATABASE keeps each record as a first-class row.
    """

    STORAGE = "storage"
    DATABASE = "database"
