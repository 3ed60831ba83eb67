"""
inkwell_common.media_enums - Media rendition names.
"""

from __future__ import annotations

from enum import Enum


class VariantTier(str, Enum):
    """Closed set of derived rendition tiers, largest first."""

    DISPLAY = "display"
    LARGE = "large"
    MEDIUM = "medium"
    THUMB = "thumb"


class ActiveVariant(str, Enum):
    """Representation currently served as a media asset's primary file."""

    ORIGINAL = "original"
    DISPLAY = "display"
    LARGE = "large"
    MEDIUM = "medium"
    THUMB = "thumb"

    @property
    def tier(self) -> VariantTier | None:
        """Return the matching variant tier, or None for ORIGINAL."""
        if self is ActiveVariant.ORIGINAL:
            return None
        return VariantTier(self.value)
