"""Structured error payload shared by every Inkwell component."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from inkwell_common.error_enums import ErrorCode


class ErrorDetail(BaseModel):
    """Immutable description of a failure.

    Carried by InkwellError and safe to serialize to callers.
    """

    model_config = ConfigDict(frozen=True)

    error_code: ErrorCode
    message: str
    correlation_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    service: str
    operation: str
    details: dict[str, Any] = Field(default_factory=dict)
