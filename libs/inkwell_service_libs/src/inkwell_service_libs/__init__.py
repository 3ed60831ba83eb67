"""Inkwell shared service utilities: structured logging and error handling."""

from .logging_utils import bind_operation_context, configure_service_logging, create_service_logger

__all__ = ["bind_operation_context", "configure_service_logging", "create_service_logger"]
