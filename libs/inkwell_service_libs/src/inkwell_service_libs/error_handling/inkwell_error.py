"""Core exception type carrying a structured ErrorDetail."""

from __future__ import annotations

from typing import Any

from inkwell_common.error_enums import STORAGE_UNAVAILABLE_CODES
from inkwell_common.models.error_models import ErrorDetail


class InkwellError(Exception):
    """Exception wrapping an ErrorDetail.

    Raised through the factory functions in
    ``inkwell_service_libs.error_handling.factories``.
    """

    def __init__(self, error_detail: ErrorDetail) -> None:
        super().__init__(f"[{error_detail.error_code.value}] {error_detail.message}")
        self.error_detail = error_detail

    @property
    def error_code(self) -> str:
        return self.error_detail.error_code.value

    @property
    def correlation_id(self) -> str:
        return str(self.error_detail.correlation_id)

    @property
    def service(self) -> str:
        return self.error_detail.service

    @property
    def operation(self) -> str:
        return self.error_detail.operation

    @property
    def details(self) -> dict[str, Any]:
        return self.error_detail.details

    @property
    def is_storage_unavailable(self) -> bool:
        """True for backend connection, auth, timeout and misconfiguration failures."""
        return self.error_detail.error_code in STORAGE_UNAVAILABLE_CODES

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error detail for API responses or logs."""
        return self.error_detail.model_dump(mode="json")
