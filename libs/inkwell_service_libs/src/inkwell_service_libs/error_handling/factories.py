"""
Factory functions for raising InkwellError with a consistent ErrorDetail.

Every factory raises and never returns, so callers can use them as the
last statement of a branch. A missing correlation ID is replaced with a
fresh one so that every raised error remains traceable in the logs.
"""

from __future__ import annotations

from typing import Any, NoReturn
from uuid import UUID, uuid4

from inkwell_common.error_enums import ErrorCode
from inkwell_common.models.error_models import ErrorDetail

from .inkwell_error import InkwellError


def _raise(
    error_code: ErrorCode,
    service: str,
    operation: str,
    message: str,
    correlation_id: UUID | None,
    details: dict[str, Any],
) -> NoReturn:
    detail = ErrorDetail(
        error_code=error_code,
        message=message,
        correlation_id=correlation_id or uuid4(),
        service=service,
        operation=operation,
        details=details,
    )
    raise InkwellError(detail)


def raise_resource_not_found(
    service: str,
    operation: str,
    resource_type: str,
    resource_id: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    """Raise RESOURCE_NOT_FOUND for a missing entry, media asset, collection or key."""
    _raise(
        ErrorCode.RESOURCE_NOT_FOUND,
        service,
        operation,
        f"{resource_type} '{resource_id}' not found",
        correlation_id,
        {"resource_type": resource_type, "resource_id": resource_id, **additional_context},
    )


def raise_validation_error(
    service: str,
    operation: str,
    field: str,
    message: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    """Raise VALIDATION_ERROR for an invalid field value or request shape."""
    _raise(
        ErrorCode.VALIDATION_ERROR,
        service,
        operation,
        message,
        correlation_id,
        {"field": field, **additional_context},
    )


def raise_duplicate_key(
    service: str,
    operation: str,
    resource_type: str,
    key: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    """Raise DUPLICATE_KEY when a slug or id is already taken."""
    _raise(
        ErrorCode.DUPLICATE_KEY,
        service,
        operation,
        f"{resource_type} '{key}' already exists",
        correlation_id,
        {"resource_type": resource_type, "key": key, **additional_context},
    )


def raise_conflict_error(
    service: str,
    operation: str,
    message: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    """Raise CONFLICT, e.g. for a stale concurrency token."""
    _raise(ErrorCode.CONFLICT, service, operation, message, correlation_id, additional_context)


def raise_connection_error(
    service: str,
    operation: str,
    target: str,
    message: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    """Raise CONNECTION_ERROR when a storage backend cannot be reached."""
    _raise(
        ErrorCode.CONNECTION_ERROR,
        service,
        operation,
        message,
        correlation_id,
        {"target": target, **additional_context},
    )


def raise_authentication_error(
    service: str,
    operation: str,
    message: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    _raise(
        ErrorCode.AUTHENTICATION_ERROR,
        service,
        operation,
        message,
        correlation_id,
        additional_context,
    )


def raise_timeout_error(
    service: str,
    operation: str,
    timeout_seconds: float,
    message: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    _raise(
        ErrorCode.TIMEOUT,
        service,
        operation,
        message,
        correlation_id,
        {"timeout_seconds": timeout_seconds, **additional_context},
    )


def raise_configuration_error(
    service: str,
    operation: str,
    config_key: str,
    message: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    """Raise CONFIGURATION_ERROR for missing or inconsistent settings."""
    _raise(
        ErrorCode.CONFIGURATION_ERROR,
        service,
        operation,
        message,
        correlation_id,
        {"config_key": config_key, **additional_context},
    )


def raise_external_service_error(
    service: str,
    operation: str,
    external_service: str,
    message: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    """Raise EXTERNAL_SERVICE_ERROR for unexpected responses from a remote API."""
    _raise(
        ErrorCode.EXTERNAL_SERVICE_ERROR,
        service,
        operation,
        message,
        correlation_id,
        {"external_service": external_service, **additional_context},
    )


def raise_processing_error(
    service: str,
    operation: str,
    message: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    """Raise PROCESSING_ERROR for a failed probe, resize or frame extraction."""
    _raise(
        ErrorCode.PROCESSING_ERROR,
        service,
        operation,
        message,
        correlation_id,
        additional_context,
    )
