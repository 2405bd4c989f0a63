"""
Demand Model

Derives expected work hours per user per day from two sources:

1. Task schedules (primary). Each assigned, dated task spreads its effort
   evenly over the weekdays of its window clipped to the requested range.
2. Project allocations (fallback). Used only for (project, user) pairs that
   produced no task-derived demand in the same computation.

A (project, user) pair is never sourced from both. Every task considered is
either modeled or tallied under exactly one unmodeled reason.

Usage:
    model = DemandModel(db_adapter)
    result = await model.build_daily_demand(
        org_id, workspace_id, '2026-03-02', '2026-03-13'
    )
    result.entries               # DemandEntry per (user, day, cause)
    result.unmodeled_reasons     # data-quality gaps
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Set, Tuple

from workpulse.domain.dates import DayLike, day_str, require_day, weekdays_between
from workpulse.domain.records import AllocationRecord, ProjectRecord, TaskRecord
from .base import EngineBase

DEFAULT_HOURS_PER_DAY = 8.0


class DemandSource(str, Enum):
    """Cause of a demand entry."""
    TASK_ESTIMATE = "task_estimate"
    TASK_DURATION_SPREAD = "task_duration_spread"
    ALLOCATION_FALLBACK = "allocation_fallback"


@dataclass
class DemandEntry:
    """Demand from one cause on one day. Entries for the same (user, date) add up."""
    user_id: str
    date: str
    demand_hours: float
    source: DemandSource
    project_id: str
    task_id: Optional[str] = None


@dataclass
class UnmodeledReasons:
    no_assignee: int = 0
    no_dates: int = 0
    capacity_disabled: int = 0


@dataclass
class DemandModelResult:
    entries: List[DemandEntry] = field(default_factory=list)
    demand_modeled_hours: float = 0.0
    demand_unmodeled_hours: float = 0.0
    unmodeled_reasons: UnmodeledReasons = field(default_factory=UnmodeledReasons)


def estimated_effort(task: TaskRecord) -> Optional[float]:
    """
    Effort hours from the task's own estimate fields.

    Remaining hours win when positive; otherwise the estimate scaled by the
    unfinished share. None when neither yields a positive figure.
    """
    if task.remaining_hours is not None and task.remaining_hours > 0:
        return task.remaining_hours

    if task.estimate_hours is not None and task.estimate_hours > 0:
        adjusted = task.estimate_hours * (100 - task.percent_complete) / 100
        if adjusted > 0:
            return adjusted

    return None


def task_effort(
    task: TaskRecord,
    workday_count: int,
    hours_per_day: float = DEFAULT_HOURS_PER_DAY,
) -> Tuple[float, DemandSource]:
    """Total effort for a scheduled task and the source it was derived from."""
    effort = estimated_effort(task)
    if effort is not None:
        return effort, DemandSource.TASK_ESTIMATE
    return workday_count * hours_per_day, DemandSource.TASK_DURATION_SPREAD


def _clamp(start, end, range_start, range_end):
    return max(start, range_start), min(end, range_end)


def build_daily_demand(
    projects: Iterable[ProjectRecord],
    tasks: Iterable[TaskRecord],
    allocations: Iterable[AllocationRecord],
    from_date: DayLike,
    to_date: DayLike,
    project_ids: Optional[Iterable[str]] = None,
    user_ids: Optional[Iterable[str]] = None,
    include_unassigned: bool = False,
    include_disabled: bool = False,
    hours_per_day: float = DEFAULT_HOURS_PER_DAY,
) -> DemandModelResult:
    """
    Build daily demand entries for a date range.

    Args:
        projects: Candidate projects
        tasks: Tasks of those projects (others are ignored)
        allocations: Resource allocations of those projects (others are ignored)
        from_date: First day (inclusive)
        to_date: Last day (inclusive)
        project_ids: Optional project filter
        user_ids: Optional user filter; tasks/allocations of other users are out of scope
        include_unassigned: Add unassigned tasks' estimated hours to the unmodeled total
        include_disabled: Include projects with capacity tracking disabled
        hours_per_day: Workday length used for duration spreading and allocations

    Returns:
        DemandModelResult
    """
    result = DemandModelResult()
    range_start = require_day(from_date, "from_date")
    range_end = require_day(to_date, "to_date")
    if range_end < range_start:
        return result

    wanted_projects = set(project_ids) if project_ids is not None else None
    wanted_users = set(user_ids) if user_ids is not None else None

    in_scope = {}
    for project in projects:
        if wanted_projects is not None and project.id not in wanted_projects:
            continue
        if project.capacity_enabled or include_disabled:
            in_scope[project.id] = project
        else:
            result.unmodeled_reasons.capacity_disabled += 1

    modeled_total = 0.0
    unmodeled_total = 0.0
    task_modeled: Set[Tuple[str, str]] = set()

    # Primary source: task schedules
    for task in tasks:
        if task.deleted or task.project_id not in in_scope:
            continue

        if not task.assignee_id:
            result.unmodeled_reasons.no_assignee += 1
            if include_unassigned:
                unmodeled_total += estimated_effort(task) or 0.0
            continue

        if wanted_users is not None and task.assignee_id not in wanted_users:
            continue

        if task.is_milestone:
            continue

        window = task.window
        if window is None:
            result.unmodeled_reasons.no_dates += 1
            unmodeled_total += estimated_effort(task) or 0.0
            continue

        start, end = _clamp(window[0], window[1], range_start, range_end)
        if start > end:
            continue

        workdays = weekdays_between(start, end)
        if not workdays:
            continue

        total, source = task_effort(task, len(workdays), hours_per_day)
        per_day = round(total / len(workdays), 2)

        for day in workdays:
            result.entries.append(DemandEntry(
                user_id=task.assignee_id,
                date=day_str(day),
                demand_hours=per_day,
                source=source,
                project_id=task.project_id,
                task_id=task.id,
            ))
            modeled_total += per_day

        task_modeled.add((task.project_id, task.assignee_id))

    # Secondary source: allocations for pairs without task-derived demand
    for allocation in allocations:
        project = in_scope.get(allocation.project_id)
        if project is None or not allocation.user_id:
            continue
        if wanted_users is not None and allocation.user_id not in wanted_users:
            continue
        if (allocation.project_id, allocation.user_id) in task_modeled:
            continue

        window_start = allocation.start_date or project.start_date
        window_end = allocation.end_date or project.end_date
        if window_start is None or window_end is None:
            continue

        start, end = _clamp(window_start, window_end, range_start, range_end)
        if start > end:
            continue

        daily = round(hours_per_day * allocation.allocation_percent / 100, 2)
        if daily <= 0:
            continue

        for day in weekdays_between(start, end):
            result.entries.append(DemandEntry(
                user_id=allocation.user_id,
                date=day_str(day),
                demand_hours=daily,
                source=DemandSource.ALLOCATION_FALLBACK,
                project_id=allocation.project_id,
            ))
            modeled_total += daily

    result.demand_modeled_hours = round(modeled_total, 2)
    result.demand_unmodeled_hours = round(unmodeled_total, 2)
    return result


class DemandModel(EngineBase):
    """
    Loads projects, tasks and allocations for a workspace and builds daily demand.
    """

    async def build_daily_demand(
        self,
        organization_id: str,
        workspace_id: str,
        from_date: DayLike,
        to_date: DayLike,
        project_ids: Optional[List[str]] = None,
        user_ids: Optional[List[str]] = None,
        include_unassigned: bool = False,
        include_disabled: bool = False,
    ) -> DemandModelResult:
        started = time.perf_counter()

        with self.get_session() as session:
            projects = self.load_projects(session, organization_id, workspace_id, project_ids)
            scoped_ids = [p.id for p in projects]
            tasks = self.load_tasks(session, organization_id, workspace_id, scoped_ids)
            allocations = self.load_allocations(session, organization_id, workspace_id, scoped_ids)

        result = build_daily_demand(
            projects,
            tasks,
            allocations,
            from_date,
            to_date,
            project_ids=project_ids,
            user_ids=user_ids,
            include_unassigned=include_unassigned,
            include_disabled=include_disabled,
            hours_per_day=self.settings.DEFAULT_HOURS_PER_DAY,
        )

        self.logger.info(
            "demand_model_built",
            workspace_id=workspace_id,
            entries=len(result.entries),
            modeled_hours=result.demand_modeled_hours,
            unmodeled_hours=result.demand_unmodeled_hours,
            no_assignee=result.unmodeled_reasons.no_assignee,
            no_dates=result.unmodeled_reasons.no_dates,
            capacity_disabled=result.unmodeled_reasons.capacity_disabled,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return result
