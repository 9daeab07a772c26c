"""task_dispatch.errors — Typed dispatch errors.

Every error carries a ``classification`` string so callers and alerting can
branch on it without parsing log text.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DispatchError(Exception):
    """Base class for all dispatcher errors."""

    classification = "dispatch-error"

    def __init__(self, message: str, *, classification: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if classification:
            self.classification = classification

    def as_dict(self) -> Dict[str, Any]:
        return {
            "classification": self.classification,
            "error_code": "",
            "message": self.message,
        }


class ConfigurationError(DispatchError):
    """Raised when placement parameters are missing or insufficient."""

    classification = "configuration-error"


class SerializationError(DispatchError):
    """Raised when an event detail cannot be encoded as JSON text."""

    classification = "serialization-error"


class DispatchFailure(DispatchError):
    """ECS rejected the launch request or could not be reached."""

    classification = "backend-rejected"

    def __init__(
        self,
        message: str,
        *,
        classification: Optional[str] = None,
        code: str = "",
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, classification=classification)
        self.code = code
        self.status_code = status_code

    def as_dict(self) -> Dict[str, Any]:
        payload = super().as_dict()
        payload["error_code"] = self.code
        if self.status_code is not None:
            payload["status_code"] = self.status_code
        return payload


class TimeoutFailure(DispatchFailure):
    """ECS did not answer within the invocation budget."""

    classification = "timeout"
