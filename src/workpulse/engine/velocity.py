"""
Sprint Velocity

Rolling average of completed story points over a project's most recent
completed sprints (by end date). Frozen points are used where present;
sprints completed before scope freezing existed are recomputed from their
current tasks.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from workpulse.domain.records import SprintRecord, SprintStatus, TaskRecord
from workpulse.storage.models import OT_PROJECT
from .base import EngineBase
from .sprint_metrics import committed_points, completed_points

DEFAULT_WINDOW = 3
MAX_WINDOW = 20


@dataclass
class VelocityEntry:
    sprint_id: str
    name: str
    end_date: Optional[str]
    committed_points: float
    completed_points: float
    points_source: str  # 'frozen' or 'recomputed'


@dataclass
class VelocityResult:
    project_id: str
    window: int
    sprints: List[VelocityEntry] = field(default_factory=list)
    rolling_average_completed_points: float = 0.0


def clamp_window(
    window: Optional[int] = None,
    default: int = DEFAULT_WINDOW,
    maximum: int = MAX_WINDOW,
) -> int:
    if window is None:
        return default
    return max(1, min(maximum, int(window)))


def _end_date_key(sprint: SprintRecord) -> date:
    return sprint.end_date or date.min


def compute_velocity(
    project_id: str,
    sprints: Iterable[SprintRecord],
    tasks_by_sprint: Dict[str, List[TaskRecord]],
    window: Optional[int] = None,
    default_window: int = DEFAULT_WINDOW,
    max_window: int = MAX_WINDOW,
) -> VelocityResult:
    """
    Velocity over the last ``window`` completed sprints.

    Args:
        project_id: Project the sprints belong to
        sprints: Candidate sprints (non-completed ones are ignored)
        tasks_by_sprint: Current tasks per sprint, for sprints without frozen points
        window: Number of sprints (clamped into [1, max_window])

    Returns:
        VelocityResult; the average is 0 when there are no completed sprints
    """
    window = clamp_window(window, default_window, max_window)

    completed = sorted(
        (s for s in sprints if s.status == SprintStatus.COMPLETED),
        key=_end_date_key,
        reverse=True,
    )[:window]

    result = VelocityResult(project_id=project_id, window=window)
    for sprint in completed:
        if sprint.has_frozen_points:
            committed = sprint.committed_points
            done = sprint.completed_points
            source = "frozen"
        else:
            tasks = tasks_by_sprint.get(sprint.id, [])
            committed = committed_points(tasks)
            done = completed_points(tasks)
            source = "recomputed"

        result.sprints.append(VelocityEntry(
            sprint_id=sprint.id,
            name=sprint.name,
            end_date=sprint.end_date.isoformat() if sprint.end_date else None,
            committed_points=committed,
            completed_points=done,
            points_source=source,
        ))

    if result.sprints:
        result.rolling_average_completed_points = round(
            sum(e.completed_points for e in result.sprints) / len(result.sprints), 2
        )
    return result


class VelocityCalculator(EngineBase):
    """
    Project velocity from stored sprints.
    """

    async def get_project_velocity(
        self,
        organization_id: str,
        project_id: str,
        window: Optional[int] = None,
    ) -> VelocityResult:
        with self.get_session() as session:
            self.get_object_or_raise(session, project_id, OT_PROJECT, organization_id)
            sprints = self.load_sprints(session, organization_id, project_id)
            legacy_ids = [
                s.id for s in sprints
                if s.status == SprintStatus.COMPLETED and not s.has_frozen_points
            ]
            tasks_by_sprint = (
                self.load_sprint_tasks(session, organization_id, legacy_ids) if legacy_ids else {}
            )

        result = compute_velocity(
            project_id,
            sprints,
            tasks_by_sprint,
            window,
            default_window=self.settings.VELOCITY_DEFAULT_WINDOW,
            max_window=self.settings.VELOCITY_MAX_WINDOW,
        )

        self.logger.info(
            "project_velocity_computed",
            project_id=project_id,
            sprint_count=len(result.sprints),
            rolling_average=result.rolling_average_completed_points,
        )
        return result
