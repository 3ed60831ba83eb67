"""Prometheus-based repository metrics implementation."""

from __future__ import annotations

from inkwell_common.observability_enums import OperationType
from inkwell_common.status_enums import OperationStatus
from inkwell_service_libs.logging_utils import create_service_logger
from prometheus_client import CollectorRegistry, Counter

from services.content_repository_service.protocols import RepositoryMetricsProtocol

logger = create_service_logger("content_repository.metrics.prometheus")


def create_operations_counter(registry: CollectorRegistry) -> Counter:
    return Counter(
        "content_repository_operations_total",
        "Total content repository operations",
        ["operation", "status"],
        registry=registry,
    )


class PrometheusRepositoryMetrics(RepositoryMetricsProtocol):
    """Prometheus-based implementation of repository metrics collection."""

    def __init__(self, operations_counter: Counter) -> None:
        """
        Initialize Prometheus repository metrics.

        Args:
            operations_counter: Prometheus counter labelled by operation and status
        """
        self.operations = operations_counter

    def record_operation(self, operation: OperationType, status: OperationStatus) -> None:
        """
        Record a repository operation metric.

        Args:
            operation: Operation type (OperationType enum)
            status: Operation status (OperationStatus enum)
        """
        try:
            self.operations.labels(operation=operation.value, status=status.value).inc()
        except ValueError as e:
            logger.error(f"Error recording repository operation metric: {e}")
