# commission_engine/core/errors.py
from __future__ import annotations

from typing import Any


class CommissionError(Exception):
    """
    Base for every error the engine raises on purpose.

    `code` is stable (clients switch on it); `status_code` is what the API
    layer answers with. Engine code never imports FastAPI.
    """

    code: str = "commission_error"
    status_code: int = 400

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.context:
            detail.update(self.context)
        return detail


class ConfigNotFound(CommissionError):
    code = "config_not_found"
    status_code = 404


class InvalidConfig(CommissionError):
    """A stored or effective configuration breaks the 100%-per-phase rules."""

    code = "invalid_config"
    status_code = 422


class DistributionImbalance(CommissionError):
    code = "distribution_imbalance"
    status_code = 422


class ValidationError(CommissionError):
    code = "validation_error"
    status_code = 422


class InvalidStatusTransition(ValidationError):
    code = "invalid_status_transition"
    status_code = 409


class NotFound(CommissionError):
    code = "not_found"
    status_code = 404


class Conflict(CommissionError):
    """Duplicate concurrent calculation. Resolved internally, never shown to callers."""

    code = "conflict"
    status_code = 409
