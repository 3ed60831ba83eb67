"""Unit tests for shared enums and the ErrorDetail model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from inkwell_common import ActiveVariant, ErrorCode, ErrorDetail, VariantTier
from inkwell_common.error_enums import STORAGE_UNAVAILABLE_CODES


class TestActiveVariant:
    def test_original_has_no_tier(self) -> None:
        assert ActiveVariant.ORIGINAL.tier is None

    @pytest.mark.parametrize("tier", list(VariantTier))
    def test_every_tier_has_an_active_variant(self, tier: VariantTier) -> None:
        assert ActiveVariant(tier.value).tier is tier


class TestErrorDetail:
    def test_defaults_are_populated(self) -> None:
        detail = ErrorDetail(
            error_code=ErrorCode.VALIDATION_ERROR,
            message="bad",
            service="svc",
            operation="op",
        )
        assert detail.correlation_id is not None
        assert detail.timestamp.tzinfo is not None
        assert detail.details == {}

    def test_is_frozen(self) -> None:
        detail = ErrorDetail(
            error_code=ErrorCode.CONFLICT, message="stale", service="svc", operation="op"
        )
        with pytest.raises(ValidationError):
            detail.message = "changed"  # type: ignore[misc]


def test_storage_unavailable_codes_exclude_domain_errors() -> None:
    assert ErrorCode.RESOURCE_NOT_FOUND not in STORAGE_UNAVAILABLE_CODES
    assert ErrorCode.VALIDATION_ERROR not in STORAGE_UNAVAILABLE_CODES
    assert ErrorCode.TIMEOUT in STORAGE_UNAVAILABLE_CODES
