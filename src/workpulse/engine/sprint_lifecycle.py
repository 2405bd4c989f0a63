"""
Sprint Lifecycle

PLANNING -> ACTIVE | CANCELLED
ACTIVE   -> COMPLETED | CANCELLED
COMPLETED, CANCELLED: terminal

Completing a sprint freezes ``committed_points`` (all story points in the
sprint at that moment) and ``completed_points`` (story points of done tasks)
and stamps ``completed_at``. Frozen points are write-once.

Terminal sprints reject edits to name/goal/dates and task assignment changes.

Usage:
    lifecycle = SprintLifecycle(db_adapter)
    sprint = await lifecycle.transition(org_id, sprint_id, SprintStatus.ACTIVE)
    sprint = await lifecycle.transition(org_id, sprint_id, SprintStatus.COMPLETED)
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterable, Optional, Union

from workpulse.domain.dates import DayLike, parse_day
from workpulse.domain.errors import (
    InvalidSprintTransitionError,
    ScopeFrozenError,
    SprintClosedError,
    SprintImmutableError,
    ValidationError,
)
from workpulse.domain.records import SprintRecord, SprintStatus, TaskRecord
from workpulse.storage.models import OT_SPRINT, OT_TASK
from .base import EngineBase
from .sprint_metrics import committed_points, completed_points

ALLOWED_TRANSITIONS: Dict[SprintStatus, FrozenSet[SprintStatus]] = {
    SprintStatus.PLANNING: frozenset({SprintStatus.ACTIVE, SprintStatus.CANCELLED}),
    SprintStatus.ACTIVE: frozenset({SprintStatus.COMPLETED, SprintStatus.CANCELLED}),
    SprintStatus.COMPLETED: frozenset(),
    SprintStatus.CANCELLED: frozenset(),
}


def can_transition(current: SprintStatus, target: SprintStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def freeze_scope(
    sprint: SprintRecord,
    tasks: Iterable[TaskRecord],
    now: Optional[datetime] = None,
) -> SprintRecord:
    """
    Fix committed/completed points from the sprint's current tasks.

    Raises:
        ScopeFrozenError: points were already frozen
    """
    if sprint.committed_points is not None or sprint.completed_points is not None:
        raise ScopeFrozenError(
            f"Sprint {sprint.id} scope is already frozen",
            {
                "sprint_id": sprint.id,
                "committed_points": sprint.committed_points,
                "completed_points": sprint.completed_points,
            },
        )

    tasks = list(tasks)
    return replace(
        sprint,
        committed_points=committed_points(tasks),
        completed_points=completed_points(tasks),
        completed_at=now or datetime.now(timezone.utc),
    )


def transition_sprint(
    sprint: SprintRecord,
    target: Union[SprintStatus, str],
    tasks: Iterable[TaskRecord] = (),
    now: Optional[datetime] = None,
) -> SprintRecord:
    """
    Move a sprint to ``target``, freezing scope when it completes.

    Raises:
        InvalidSprintTransitionError: target is not reachable from the current status
    """
    try:
        target = SprintStatus(target)
    except ValueError:
        raise InvalidSprintTransitionError(sprint.status.value, str(target))

    if not can_transition(sprint.status, target):
        raise InvalidSprintTransitionError(sprint.status.value, target.value)

    if target == SprintStatus.COMPLETED:
        sprint = freeze_scope(sprint, tasks, now)

    return replace(sprint, status=target)


def update_sprint_details(
    sprint: SprintRecord,
    name: Optional[str] = None,
    goal: Optional[str] = None,
    start_date: Optional[DayLike] = None,
    end_date: Optional[DayLike] = None,
) -> SprintRecord:
    """
    Change name/goal/dates of a non-terminal sprint. None leaves a field unchanged.

    Raises:
        SprintImmutableError: the sprint is completed or cancelled
        ValidationError: the resulting end date precedes the start date
    """
    if sprint.is_terminal:
        raise SprintImmutableError(
            f"Sprint {sprint.id} is {sprint.status.value} and cannot be modified",
            {"sprint_id": sprint.id, "status": sprint.status.value},
        )

    updated = replace(
        sprint,
        name=sprint.name if name is None else name,
        goal=sprint.goal if goal is None else goal,
        start_date=sprint.start_date if start_date is None else parse_day(start_date),
        end_date=sprint.end_date if end_date is None else parse_day(end_date),
    )
    if updated.start_date and updated.end_date and updated.end_date < updated.start_date:
        raise ValidationError(
            "Sprint end date must not precede its start date",
            {"start_date": str(updated.start_date), "end_date": str(updated.end_date)},
        )
    return updated


def ensure_sprint_open(sprint: SprintRecord) -> None:
    if sprint.is_terminal:
        raise SprintClosedError(
            f"Sprint {sprint.id} is {sprint.status.value}; tasks cannot be changed",
            {"sprint_id": sprint.id, "status": sprint.status.value},
        )


def assign_task(sprint: SprintRecord, task: TaskRecord) -> TaskRecord:
    ensure_sprint_open(sprint)
    if task.project_id != sprint.project_id:
        raise ValidationError(
            "Task belongs to a different project than the sprint",
            {"task_id": task.id, "sprint_id": sprint.id},
        )
    return replace(task, sprint_id=sprint.id)


def remove_task(sprint: SprintRecord, task: TaskRecord) -> TaskRecord:
    ensure_sprint_open(sprint)
    if task.sprint_id != sprint.id:
        raise ValidationError(
            "Task is not part of the sprint",
            {"task_id": task.id, "sprint_id": sprint.id},
        )
    return replace(task, sprint_id=None)


class SprintLifecycle(EngineBase):
    """
    Applies lifecycle operations to stored sprints and writes the result back.
    """

    def _load_sprint(self, session, organization_id: str, sprint_id: str):
        return SprintRecord.from_object(
            self.get_object_or_raise(session, sprint_id, OT_SPRINT, organization_id)
        )

    def _save_sprint(self, session, sprint: SprintRecord) -> None:
        self.objects.update(session, sprint.id, {'data': sprint.to_data()})

    async def transition(
        self,
        organization_id: str,
        sprint_id: str,
        target: Union[SprintStatus, str],
    ) -> SprintRecord:
        with self.get_session() as session:
            sprint = self._load_sprint(session, organization_id, sprint_id)
            tasks = self.load_sprint_tasks(session, organization_id, [sprint.id])[sprint.id]
            previous = sprint.status

            updated = transition_sprint(sprint, target, tasks, self.now())
            self._save_sprint(session, updated)

        self.logger.info(
            "sprint_transition",
            sprint_id=sprint_id,
            from_status=previous.value,
            to_status=updated.status.value,
            committed_points=updated.committed_points,
            completed_points=updated.completed_points,
        )
        return updated

    async def update_details(
        self,
        organization_id: str,
        sprint_id: str,
        name: Optional[str] = None,
        goal: Optional[str] = None,
        start_date: Optional[DayLike] = None,
        end_date: Optional[DayLike] = None,
    ) -> SprintRecord:
        with self.get_session() as session:
            sprint = self._load_sprint(session, organization_id, sprint_id)
            updated = update_sprint_details(sprint, name, goal, start_date, end_date)
            self._save_sprint(session, updated)
        return updated

    async def assign_task(self, organization_id: str, sprint_id: str, task_id: str) -> TaskRecord:
        with self.get_session() as session:
            sprint = self._load_sprint(session, organization_id, sprint_id)
            task = TaskRecord.from_object(
                self.get_object_or_raise(session, task_id, OT_TASK, organization_id)
            )
            updated = assign_task(sprint, task)
            self.objects.update(session, task.id, {'data': {'sprint_id': sprint.id}})

        self.logger.info("sprint_task_assigned", sprint_id=sprint_id, task_id=task_id)
        return updated

    async def remove_task(self, organization_id: str, sprint_id: str, task_id: str) -> TaskRecord:
        with self.get_session() as session:
            sprint = self._load_sprint(session, organization_id, sprint_id)
            task = TaskRecord.from_object(
                self.get_object_or_raise(session, task_id, OT_TASK, organization_id)
            )
            updated = remove_task(sprint, task)
            self.objects.update(session, task.id, {'data': {'sprint_id': None}})

        self.logger.info("sprint_task_removed", sprint_id=sprint_id, task_id=task_id)
        return updated
