"""
Sprint Capacity and Burndown

Workday arithmetic, allocation-to-hours conversion, the sprint capacity
report and daily burndown/burnup buckets.

Capacity comes from the project's resource allocations over the sprint's
workdays. Load comes from committed story points, converted at a fixed
hours-per-point rate. A completed sprint reports its frozen points; live
task data never replaces them.

Burndown buckets cover every calendar day of the sprint, weekends
included, while capacity counts workdays only.

Usage:
    metrics = SprintMetrics(db_adapter)
    capacity = await metrics.get_sprint_capacity(org_id, sprint_id)
    burndown = await metrics.get_sprint_burndown(org_id, sprint_id)
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List

from workpulse.domain.dates import (
    count_workdays,
    date_overlap,
    day_str,
    iter_days,
)
from workpulse.domain.errors import ValidationError
from workpulse.domain.records import (
    AllocationRecord,
    SprintRecord,
    SprintStatus,
    TaskRecord,
)
from workpulse.storage.models import OT_SPRINT
from .base import EngineBase

DEFAULT_HOURS_PER_DAY = 8.0
DEFAULT_HOURS_PER_POINT = 2.0

UNIT_POINTS = "points"
UNIT_HOURS = "hours"

SCOPE_LIVE = "live"
SCOPE_FROZEN = "frozen"

__all__ = [
    "DEFAULT_HOURS_PER_DAY",
    "DEFAULT_HOURS_PER_POINT",
    "count_workdays",
    "date_overlap",
    "compute_allocated_hours",
    "compute_load_from_points",
    "committed_points",
    "completed_points",
    "compute_sprint_capacity",
    "build_burndown",
    "CapacityBasis",
    "SprintCapacityResult",
    "DailyBucket",
    "BurndownResult",
    "SprintMetrics",
]


@dataclass
class CapacityBasis:
    """Inputs that produced a sprint capacity report."""
    hours_per_day: float
    workdays: int
    points_to_hours_ratio: float
    allocation_count: int
    allocation_source: str
    load_source: str


@dataclass
class SprintCapacityResult:
    sprint_id: str
    capacity_hours: float
    load_hours: float
    remaining_hours: float  # negative when over-committed
    committed_story_points: float
    completed_story_points: float
    remaining_story_points: float
    task_count: int
    done_task_count: int
    capacity_basis: CapacityBasis


@dataclass
class DailyBucket:
    date: str
    total_points: float
    remaining_points: float
    completed_points: float
    ideal_remaining: float


@dataclass
class BurndownResult:
    total_points: float
    scope_mode: str
    unit: str = UNIT_POINTS
    buckets: List[DailyBucket] = field(default_factory=list)


def compute_allocated_hours(
    sprint_start: date,
    sprint_end: date,
    allocations: Iterable[AllocationRecord],
    hours_per_day: float = DEFAULT_HOURS_PER_DAY,
) -> float:
    """
    Hours the allocations provide inside the sprint window.

    Allocations without their own bounds take the sprint's bounds.
    """
    total = 0.0
    for allocation in allocations:
        overlap = date_overlap(
            allocation.start_date or sprint_start,
            allocation.end_date or sprint_end,
            sprint_start,
            sprint_end,
        )
        if overlap is None:
            continue
        workdays = count_workdays(*overlap)
        total += workdays * hours_per_day * allocation.allocation_percent / 100
    return round(total, 2)


def compute_load_from_points(points: float, hours_per_point: float = DEFAULT_HOURS_PER_POINT) -> float:
    return points * hours_per_point


def _live(tasks: Iterable[TaskRecord]) -> List[TaskRecord]:
    return [t for t in tasks if not t.deleted]


def committed_points(tasks: Iterable[TaskRecord]) -> float:
    return sum(t.story_points for t in _live(tasks))


def completed_points(tasks: Iterable[TaskRecord]) -> float:
    return sum(t.story_points for t in _live(tasks) if t.is_done)


def _uses_frozen_scope(sprint: SprintRecord) -> bool:
    return sprint.status == SprintStatus.COMPLETED and sprint.committed_points is not None


def compute_sprint_capacity(
    sprint: SprintRecord,
    tasks: Iterable[TaskRecord],
    allocations: Iterable[AllocationRecord],
    hours_per_day: float = DEFAULT_HOURS_PER_DAY,
    hours_per_point: float = DEFAULT_HOURS_PER_POINT,
) -> SprintCapacityResult:
    """
    Capacity vs. load for one sprint.

    Args:
        sprint: The sprint
        tasks: Tasks linked to the sprint
        allocations: Resource allocations of the sprint's project
        hours_per_day: Workday length
        hours_per_point: Story point to hours conversion

    Returns:
        SprintCapacityResult
    """
    tasks = _live(tasks)
    allocations = list(allocations)

    if sprint.start_date and sprint.end_date:
        capacity = compute_allocated_hours(
            sprint.start_date, sprint.end_date, allocations, hours_per_day
        )
        workdays = count_workdays(sprint.start_date, sprint.end_date)
    else:
        capacity = 0.0
        workdays = 0

    if _uses_frozen_scope(sprint) and sprint.completed_points is not None:
        committed = sprint.committed_points
        completed = sprint.completed_points
        load_source = "frozen_points"
    else:
        committed = committed_points(tasks)
        completed = completed_points(tasks)
        load_source = "story_points"

    load = round(compute_load_from_points(committed, hours_per_point), 2)

    return SprintCapacityResult(
        sprint_id=sprint.id,
        capacity_hours=capacity,
        load_hours=load,
        remaining_hours=round(capacity - load, 2),
        committed_story_points=committed,
        completed_story_points=completed,
        remaining_story_points=max(0.0, committed - completed),
        task_count=len(tasks),
        done_task_count=sum(1 for t in tasks if t.is_done),
        capacity_basis=CapacityBasis(
            hours_per_day=hours_per_day,
            workdays=workdays,
            points_to_hours_ratio=hours_per_point,
            allocation_count=len(allocations),
            allocation_source="project_allocations" if allocations else "none",
            load_source=load_source,
        ),
    )


def _task_value(task: TaskRecord, unit: str) -> float:
    if unit == UNIT_HOURS:
        if task.remaining_hours is not None:
            return task.remaining_hours
        return task.estimate_hours or 0.0
    return task.story_points


def build_burndown(
    sprint: SprintRecord,
    tasks: Iterable[TaskRecord],
    unit: str = UNIT_POINTS,
) -> BurndownResult:
    """
    One bucket per calendar day of the sprint.

    The baseline is the frozen committed points for a completed sprint
    (points unit only), otherwise the live sum over current tasks.
    Completed work accumulates from each task's completion day onward.
    Returns no buckets when the baseline is 0 or the range is missing or inverted.
    """
    if unit not in (UNIT_POINTS, UNIT_HOURS):
        raise ValidationError(f"Unsupported burndown unit: {unit}", {"unit": unit})

    tasks = _live(tasks)

    if unit == UNIT_POINTS and _uses_frozen_scope(sprint):
        total = sprint.committed_points
        scope_mode = SCOPE_FROZEN
    else:
        total = sum(_task_value(t, unit) for t in tasks)
        scope_mode = SCOPE_LIVE

    result = BurndownResult(total_points=total, scope_mode=scope_mode, unit=unit)

    start, end = sprint.start_date, sprint.end_date
    if total <= 0 or start is None or end is None or end < start:
        return result

    completions = sorted(
        (t.completed_at.date(), _task_value(t, unit))
        for t in tasks
        if t.completed_at is not None
    )

    days = list(iter_days(start, end))
    total_days = len(days)
    cumulative = 0.0
    cursor = 0

    for index, day in enumerate(days):
        while cursor < len(completions) and completions[cursor][0] <= day:
            cumulative += completions[cursor][1]
            cursor += 1

        if total_days == 1:
            ideal = 0.0
        else:
            ideal = total * (1 - index / (total_days - 1))

        result.buckets.append(DailyBucket(
            date=day_str(day),
            total_points=total,
            remaining_points=round(max(0.0, total - cumulative), 2),
            completed_points=round(cumulative, 2),
            ideal_remaining=round(ideal, 2),
        ))

    return result


class SprintMetrics(EngineBase):
    """
    Sprint capacity and burndown for stored sprints.
    """

    async def get_sprint_capacity(self, organization_id: str, sprint_id: str) -> SprintCapacityResult:
        with self.get_session() as session:
            sprint = SprintRecord.from_object(
                self.get_object_or_raise(session, sprint_id, OT_SPRINT, organization_id)
            )
            tasks = self.load_sprint_tasks(session, organization_id, [sprint.id])[sprint.id]
            allocations = self.load_allocations(
                session, organization_id, project_ids=[sprint.project_id]
            )

        result = compute_sprint_capacity(
            sprint,
            tasks,
            allocations,
            hours_per_day=self.settings.DEFAULT_HOURS_PER_DAY,
            hours_per_point=self.settings.HOURS_PER_POINT,
        )

        self.logger.info(
            "sprint_capacity_computed",
            sprint_id=sprint.id,
            capacity_hours=result.capacity_hours,
            load_hours=result.load_hours,
            load_source=result.capacity_basis.load_source,
        )
        return result

    async def get_sprint_burndown(
        self,
        organization_id: str,
        sprint_id: str,
        unit: str = UNIT_POINTS,
    ) -> BurndownResult:
        with self.get_session() as session:
            sprint = SprintRecord.from_object(
                self.get_object_or_raise(session, sprint_id, OT_SPRINT, organization_id)
            )
            tasks = self.load_sprint_tasks(session, organization_id, [sprint.id])[sprint.id]

        return build_burndown(sprint, tasks, unit)
