"""
inkwell_common.storage_enums - Storage addressing enums.
"""

from __future__ import annotations

from enum import Enum


class StorageKind(str, Enum):
    """Logical subtree a stored document belongs to.

    Passed explicitly by callers so document-database backends can pick a
    table without inspecting the key.
    """

    ENTRIES = "entries"
    MEDIA = "media"
    CATEGORIES = "categories"
    USERS = "users"
    FILES = "files"
