"""
Records parsed from stored source objects.

The collaborator layer owns projects, tasks, allocations and sprints and
stores them as typed objects with a JSON ``data`` payload. The engine only
reads the fields below; everything else in the payload is ignored.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .dates import parse_day, parse_timestamp


class SprintStatus(str, Enum):
    """Sprint lifecycle states."""
    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TASK_STATUS_DONE = "done"


def _float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass
class ProjectRecord:
    id: str
    name: str = ""
    capacity_enabled: bool = False
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @classmethod
    def from_object(cls, obj) -> "ProjectRecord":
        data = obj.data or {}
        return cls(
            id=obj.id,
            name=data.get("name", ""),
            capacity_enabled=bool(data.get("capacity_enabled", False)),
            start_date=parse_day(data.get("start_date")),
            end_date=parse_day(data.get("end_date")),
        )


@dataclass
class TaskRecord:
    id: str
    project_id: str
    title: str = ""
    assignee_id: Optional[str] = None
    status: str = "todo"
    is_milestone: bool = False
    estimate_hours: Optional[float] = None
    remaining_hours: Optional[float] = None
    percent_complete: float = 0.0
    planned_start: Optional[date] = None
    planned_end: Optional[date] = None
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    sprint_id: Optional[str] = None
    story_points: float = 0.0
    completed_at: Optional[datetime] = None
    deleted: bool = False

    @classmethod
    def from_object(cls, obj) -> "TaskRecord":
        data = obj.data or {}
        return cls(
            id=obj.id,
            project_id=data.get("project_id", ""),
            title=data.get("title", ""),
            assignee_id=data.get("assignee_id") or None,
            status=data.get("status", "todo"),
            is_milestone=bool(data.get("is_milestone", False)),
            estimate_hours=_float(data.get("estimate_hours")),
            remaining_hours=_float(data.get("remaining_hours")),
            percent_complete=_float(data.get("percent_complete")) or 0.0,
            planned_start=parse_day(data.get("planned_start")),
            planned_end=parse_day(data.get("planned_end")),
            start_date=parse_day(data.get("start_date")),
            due_date=parse_day(data.get("due_date")),
            sprint_id=data.get("sprint_id") or None,
            story_points=_float(data.get("story_points")) or 0.0,
            completed_at=parse_timestamp(data.get("completed_at")),
            deleted=obj.status == "deleted" or bool(data.get("deleted_at")),
        )

    @property
    def is_done(self) -> bool:
        return self.status == TASK_STATUS_DONE

    @property
    def window(self) -> Optional[Tuple[date, date]]:
        """Scheduled window: planned dates preferred, generic start/due as fallback."""
        start = self.planned_start or self.start_date
        end = self.planned_end or self.due_date
        if start is None or end is None:
            return None
        return start, end


@dataclass
class AllocationRecord:
    id: str
    project_id: str
    user_id: str
    allocation_percent: float = 0.0
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @classmethod
    def from_object(cls, obj) -> "AllocationRecord":
        data = obj.data or {}
        return cls(
            id=obj.id,
            project_id=data.get("project_id", ""),
            user_id=data.get("user_id", ""),
            allocation_percent=_float(data.get("allocation_percent")) or 0.0,
            start_date=parse_day(data.get("start_date")),
            end_date=parse_day(data.get("end_date")),
        )


@dataclass
class SprintRecord:
    id: str
    project_id: str
    name: str = ""
    goal: Optional[str] = None
    status: SprintStatus = SprintStatus.PLANNING
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    committed_points: Optional[float] = None
    completed_points: Optional[float] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_object(cls, obj) -> "SprintRecord":
        data = obj.data or {}
        return cls(
            id=obj.id,
            project_id=data.get("project_id", ""),
            name=data.get("name", ""),
            goal=data.get("goal"),
            status=SprintStatus(data.get("status", SprintStatus.PLANNING.value)),
            start_date=parse_day(data.get("start_date")),
            end_date=parse_day(data.get("end_date")),
            committed_points=_float(data.get("committed_points")),
            completed_points=_float(data.get("completed_points")),
            completed_at=parse_timestamp(data.get("completed_at")),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (SprintStatus.COMPLETED, SprintStatus.CANCELLED)

    @property
    def has_frozen_points(self) -> bool:
        return self.committed_points is not None and self.completed_points is not None

    def to_data(self) -> Dict[str, Any]:
        """Payload fields owned by the lifecycle, for writing back to the stored object."""
        return {
            "name": self.name,
            "goal": self.goal,
            "status": self.status.value,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "committed_points": self.committed_points,
            "completed_points": self.completed_points,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
