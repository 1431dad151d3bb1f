"""Exception types raised by larder."""

from __future__ import annotations

from typing import Optional


class LarderError(Exception):
    """Base class for larder errors."""


class AIServiceError(LarderError):
    """The AI text-generation service failed or returned unusable content."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RecordNotFoundError(LarderError):
    """A record could not be found in the record store."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} record {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class UnknownStepError(LarderError, ValueError):
    """Raised when an isolated step execution names no known step."""

    def __init__(self, step_name: str) -> None:
        super().__init__(f"Unknown step: {step_name}")
        self.step_name = step_name
