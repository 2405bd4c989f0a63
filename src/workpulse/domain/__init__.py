"""
Domain records, day arithmetic and business errors shared by the engine.
"""

from .errors import (
    WorkpulseError,
    ValidationError,
    NotFoundError,
    InvalidSprintTransitionError,
    SprintImmutableError,
    SprintClosedError,
    ScopeFrozenError,
)
from .records import (
    SprintStatus,
    ProjectRecord,
    TaskRecord,
    AllocationRecord,
    SprintRecord,
)

__all__ = [
    "WorkpulseError",
    "ValidationError",
    "NotFoundError",
    "InvalidSprintTransitionError",
    "SprintImmutableError",
    "SprintClosedError",
    "ScopeFrozenError",
    "SprintStatus",
    "ProjectRecord",
    "TaskRecord",
    "AllocationRecord",
    "SprintRecord",
]
