"""Error handling utilities for Inkwell services."""

from .factories import (
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
from .inkwell_error import InkwellError

__all__ = [
    "InkwellError",
    "raise_authentication_error",
    "raise_configuration_error",
    "raise_conflict_error",
    "raise_connection_error",
    "raise_duplicate_key",
    "raise_external_service_error",
    "raise_processing_error",
    "raise_resource_not_found",
    "raise_timeout_error",
    "raise_validation_error",
]
