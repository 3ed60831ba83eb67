"""Outcome recording for repository operations."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from inkwell_common.error_enums import ErrorCode
from inkwell_common.observability_enums import OperationType
from inkwell_common.status_enums import OperationStatus
from inkwell_service_libs.error_handling import InkwellError

from services.content_repository_service.protocols import RepositoryMetricsProtocol


@contextmanager
def track_operation(
    metrics: RepositoryMetricsProtocol | None, operation: OperationType
) -> Iterator[None]:
    """Record success, not_found or failed for the wrapped block."""
    try:
        yield
    except InkwellError as e:
        if metrics is not None:
            status = (
                OperationStatus.NOT_FOUND
                if e.error_code == ErrorCode.RESOURCE_NOT_FOUND.value
                else OperationStatus.FAILED
            )
            metrics.record_operation(operation, status)
        raise
    except Exception:
        if metrics is not None:
            metrics.record_operation(operation, OperationStatus.ERROR)
        raise
    if metrics is not None:
        metrics.record_operation(operation, OperationStatus.SUCCESS)
