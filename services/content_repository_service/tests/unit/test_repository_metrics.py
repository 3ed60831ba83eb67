"""Unit tests for Prometheus repository metrics and operation tracking."""

from __future__ import annotations

import pytest
from inkwell_common.observability_enums import OperationType
from inkwell_common.status_enums import OperationStatus
from inkwell_service_libs.error_handling import InkwellError, raise_resource_not_found
from prometheus_client import CollectorRegistry

from services.content_repository_service.implementations.prometheus_repository_metrics import (
    PrometheusRepositoryMetrics,
    create_operations_counter,
)
from services.content_repository_service.operation_tracking import track_operation
from services.content_repository_service.tests.fakes import RecordingMetrics


def _sample(registry: CollectorRegistry, operation: str, status: str) -> float | None:
    return registry.get_sample_value(
        "content_repository_operations_total", {"operation": operation, "status": status}
    )


class TestPrometheusRepositoryMetrics:
    def test_counter_is_labelled_by_operation_and_status(self) -> None:
        registry = CollectorRegistry()
        metrics = PrometheusRepositoryMetrics(create_operations_counter(registry))

        metrics.record_operation(OperationType.UPLOAD_MEDIA, OperationStatus.SUCCESS)
        metrics.record_operation(OperationType.UPLOAD_MEDIA, OperationStatus.SUCCESS)
        metrics.record_operation(OperationType.DELETE_ENTRY, OperationStatus.NOT_FOUND)

        assert _sample(registry, "upload_media", "success") == 2.0
        assert _sample(registry, "delete_entry", "not_found") == 1.0


class TestTrackOperation:
    """Outcome classification of wrapped blocks."""

    def test_success(self) -> None:
        metrics = RecordingMetrics()
        with track_operation(metrics, OperationType.CREATE_ENTRY):
            pass
        assert metrics.calls == [("create_entry", "success")]

    def test_not_found_is_distinguished(self) -> None:
        metrics = RecordingMetrics()
        with pytest.raises(InkwellError):
            with track_operation(metrics, OperationType.DELETE_MEDIA):
                raise_resource_not_found("svc", "op", "media", "m1")
        assert metrics.calls == [("delete_media", "not_found")]

    def test_unexpected_exception_is_error(self) -> None:
        metrics = RecordingMetrics()
        with pytest.raises(RuntimeError):
            with track_operation(metrics, OperationType.REPLACE_MEDIA):
                raise RuntimeError("boom")
        assert metrics.calls == [("replace_media", "error")]

    def test_metrics_are_optional(self) -> None:
        with track_operation(None, OperationType.UPDATE_MEDIA):
            pass
