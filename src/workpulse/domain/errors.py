"""
Business errors raised by the engine.

Each error carries a stable ``code`` so an outer layer can render it
without parsing messages.
"""

from typing import Any, Dict, Optional


class WorkpulseError(Exception):
    code = "WORKPULSE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(WorkpulseError):
    code = "VALIDATION_ERROR"


class NotFoundError(WorkpulseError):
    code = "NOT_FOUND"

    def __init__(self, kind: str, object_id: str) -> None:
        super().__init__(f"{kind} {object_id} not found", {"kind": kind, "id": object_id})


class InvalidSprintTransitionError(WorkpulseError):
    code = "INVALID_SPRINT_TRANSITION"

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Invalid sprint transition from {current} to {target}",
            {"from": current, "to": target},
        )
        self.current = current
        self.target = target


class SprintImmutableError(WorkpulseError):
    code = "SPRINT_IMMUTABLE"


class SprintClosedError(WorkpulseError):
    code = "SPRINT_CLOSED"


class ScopeFrozenError(WorkpulseError):
    code = "SCOPE_FROZEN"
