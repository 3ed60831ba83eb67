"""
Unit tests for error handling factory functions.

Validates ErrorDetail creation, InkwellError raising, context propagation
and correlation ID defaults.
"""

from __future__ import annotations

import uuid
from uuid import UUID

import pytest
from inkwell_common.error_enums import ErrorCode
from inkwell_service_libs.error_handling import (
    InkwellError,
    raise_authentication_error,
    raise_configuration_error,
    raise_conflict_error,
    raise_connection_error,
    raise_duplicate_key,
    raise_external_service_error,
    raise_processing_error,
    raise_resource_not_found,
    raise_timeout_error,
    raise_validation_error,
)


@pytest.fixture
def test_correlation_id() -> UUID:
    """Provide consistent correlation ID for testing."""
    return uuid.uuid4()


class TestResourceErrors:
    """Test factories for missing and duplicate resources."""

    def test_raise_resource_not_found(self, test_correlation_id: UUID) -> None:
        with pytest.raises(InkwellError) as exc_info:
            raise_resource_not_found(
                service="content_repository_service",
                operation="get_entry",
                resource_type="entry",
                resource_id="posts/hello",
                correlation_id=test_correlation_id,
            )

        error = exc_info.value
        assert error.error_code == ErrorCode.RESOURCE_NOT_FOUND.value
        assert error.correlation_id == str(test_correlation_id)
        assert error.service == "content_repository_service"
        assert error.operation == "get_entry"
        assert error.details["resource_type"] == "entry"
        assert error.details["resource_id"] == "posts/hello"
        assert str(error) == "[RESOURCE_NOT_FOUND] entry 'posts/hello' not found"

    def test_raise_duplicate_key_includes_key(self) -> None:
        with pytest.raises(InkwellError) as exc_info:
            raise_duplicate_key(
                service="svc",
                operation="rename",
                resource_type="entry",
                key="posts/b",
                collection="posts",
            )

        error = exc_info.value
        assert error.error_code == ErrorCode.DUPLICATE_KEY.value
        assert error.details == {"resource_type": "entry", "key": "posts/b", "collection": "posts"}

    def test_missing_correlation_id_is_generated(self) -> None:
        with pytest.raises(InkwellError) as exc_info:
            raise_validation_error(
                service="svc",
                operation="op",
                field="title",
                message="Title is required",
            )

        # Must parse as a UUID
        UUID(exc_info.value.correlation_id)
        assert exc_info.value.details["field"] == "title"


class TestStorageUnavailableFamily:
    """Test the grouping of backend failures."""

    @pytest.mark.parametrize(
        "raiser",
        [
            lambda: raise_connection_error("svc", "op", "github", "refused"),
            lambda: raise_authentication_error("svc", "op", "bad token"),
            lambda: raise_timeout_error("svc", "op", 5.0, "timed out"),
            lambda: raise_configuration_error("svc", "op", "GITHUB_TOKEN", "missing"),
            lambda: raise_external_service_error("svc", "op", "github", "HTTP 500"),
        ],
    )
    def test_backend_failures_are_storage_unavailable(self, raiser) -> None:
        with pytest.raises(InkwellError) as exc_info:
            raiser()
        assert exc_info.value.is_storage_unavailable is True

    @pytest.mark.parametrize(
        "raiser",
        [
            lambda: raise_conflict_error("svc", "op", "stale sha"),
            lambda: raise_processing_error("svc", "op", "bad image"),
            lambda: raise_resource_not_found("svc", "op", "media", "m1"),
        ],
    )
    def test_other_failures_are_not_storage_unavailable(self, raiser) -> None:
        with pytest.raises(InkwellError) as exc_info:
            raiser()
        assert exc_info.value.is_storage_unavailable is False

    def test_timeout_records_duration(self) -> None:
        with pytest.raises(InkwellError) as exc_info:
            raise_timeout_error("svc", "read", 2.5, "GitHub read timed out", key="a.json")
        assert exc_info.value.details == {"timeout_seconds": 2.5, "key": "a.json"}


def test_to_dict_is_json_safe(test_correlation_id: UUID) -> None:
    with pytest.raises(InkwellError) as exc_info:
        raise_processing_error(
            "svc", "resize", "decoder failed", correlation_id=test_correlation_id
        )

    payload = exc_info.value.to_dict()
    assert payload["error_code"] == "PROCESSING_ERROR"
    assert payload["correlation_id"] == str(test_correlation_id)
    assert isinstance(payload["timestamp"], str)
