"""
Capacity Analytics

Joins the capacity calendar with the demand model into utilization and
overallocation reports.

A day is overallocated when demand exceeds capacity scaled by the
threshold. The threshold defaults to 1.0 and is clamped into [0.5, 2.0].
Hours are reported to 2 decimals, utilization ratios to 3.

Usage:
    analytics = CapacityAnalytics(db_adapter)

    utilization = await analytics.compute_utilization(
        org_id, workspace_id, '2026-03-02', '2026-03-13', threshold=1.1
    )
    overallocations = await analytics.compute_overallocations(
        org_id, workspace_id, '2026-03-02', '2026-03-13'
    )
"""

import math
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from workpulse.domain.dates import DayLike, day_str, parse_day, week_start
from .base import EngineBase
from .capacity_calendar import DEFAULT_CAPACITY_HOURS, CapacityCalendar, CapacityMap
from .demand_model import DemandEntry, DemandModel, DemandSource

DEFAULT_UTILIZATION_THRESHOLD = 1.0
MIN_THRESHOLD = 0.5
MAX_THRESHOLD = 2.0


@dataclass
class UserDailyUtilization:
    user_id: str
    date: str
    capacity_hours: float
    demand_hours: float
    utilization: float  # demand / capacity, inf when capacity is 0 and demand > 0
    over_by_hours: float  # max(0, demand - capacity * threshold)


@dataclass
class UserWeeklyRollup:
    user_id: str
    week_start_date: str  # Monday
    total_capacity_hours: float
    total_demand_hours: float
    average_utilization: float
    peak_day_utilization: float
    overallocated_days: int


@dataclass
class WorkspaceSummary:
    total_capacity_hours: float = 0.0
    total_demand_hours: float = 0.0
    average_utilization: float = 0.0
    overallocated_user_count: int = 0


@dataclass
class UtilizationResult:
    per_user_daily: List[UserDailyUtilization] = field(default_factory=list)
    per_user_weekly: List[UserWeeklyRollup] = field(default_factory=list)
    workspace_summary: WorkspaceSummary = field(default_factory=WorkspaceSummary)
    threshold: float = DEFAULT_UTILIZATION_THRESHOLD


@dataclass
class ContributingDemand:
    """One task or allocation contributing to an overallocated day."""
    project_id: str
    demand_hours: float
    source: DemandSource
    task_id: Optional[str] = None


@dataclass
class OverallocationEntry:
    user_id: str
    date: str
    capacity_hours: float
    demand_hours: float
    over_by_hours: float
    tasks: List[ContributingDemand] = field(default_factory=list)


@dataclass
class OverallocationResult:
    entries: List[OverallocationEntry] = field(default_factory=list)
    total_overallocated_days: int = 0
    affected_user_count: int = 0
    threshold: float = DEFAULT_UTILIZATION_THRESHOLD


def clamp_threshold(
    threshold: Optional[float] = None,
    default: float = DEFAULT_UTILIZATION_THRESHOLD,
    minimum: float = MIN_THRESHOLD,
    maximum: float = MAX_THRESHOLD,
) -> float:
    """Default when absent, otherwise clamp into [minimum, maximum]."""
    if threshold is None or (isinstance(threshold, float) and math.isnan(threshold)):
        return default
    return max(minimum, min(maximum, float(threshold)))


def utilization_ratio(demand: float, capacity: float) -> float:
    if capacity > 0:
        return demand / capacity
    return math.inf if demand > 0 else 0.0


def _ratio(value: float) -> float:
    return round(value, 3)


def _hours(value: float) -> float:
    return round(value, 2)


def demand_by_user_day(entries: Iterable[DemandEntry]) -> Dict[str, Dict[str, float]]:
    """Sum demand entries per (user, date)."""
    totals: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for entry in entries:
        totals[entry.user_id][entry.date] += entry.demand_hours
    return totals


def collect_user_ids(
    entries: Iterable[DemandEntry],
    requested: Optional[Iterable[str]] = None,
) -> List[str]:
    """Users appearing in demand plus any explicitly requested, first-seen order."""
    seen: Dict[str, None] = {}
    for entry in entries:
        seen.setdefault(entry.user_id, None)
    for user_id in requested or ():
        seen.setdefault(user_id, None)
    return list(seen)


def build_weekly_rollups(daily: Iterable[UserDailyUtilization]) -> List[UserWeeklyRollup]:
    """Group daily records per user by the Monday that starts their week."""
    weeks: Dict[Tuple[str, str], Dict[str, float]] = {}

    for record in daily:
        monday = day_str(week_start(parse_day(record.date)))
        key = (record.user_id, monday)
        week = weeks.get(key)
        if week is None:
            week = weeks[key] = {'capacity': 0.0, 'demand': 0.0, 'peak': 0.0, 'over_days': 0}
        week['capacity'] += record.capacity_hours
        week['demand'] += record.demand_hours
        week['peak'] = max(week['peak'], record.utilization)
        if record.over_by_hours > 0:
            week['over_days'] += 1

    return [
        UserWeeklyRollup(
            user_id=user_id,
            week_start_date=monday,
            total_capacity_hours=_hours(week['capacity']),
            total_demand_hours=_hours(week['demand']),
            average_utilization=(
                _ratio(week['demand'] / week['capacity']) if week['capacity'] > 0 else 0.0
            ),
            peak_day_utilization=_ratio(week['peak']),
            overallocated_days=int(week['over_days']),
        )
        for (user_id, monday), week in weeks.items()
    ]


def compute_utilization(
    entries: Iterable[DemandEntry],
    capacity_map: CapacityMap,
    threshold: Optional[float] = None,
    min_threshold: float = MIN_THRESHOLD,
    max_threshold: float = MAX_THRESHOLD,
) -> UtilizationResult:
    """
    Join demand with capacity for every (user, date) in the capacity map.

    Args:
        entries: Demand entries
        capacity_map: Capacity per user per day; defines which users/days are reported
        threshold: Overallocation threshold, clamped into [min_threshold, max_threshold]
        min_threshold: Lower threshold bound
        max_threshold: Upper threshold bound

    Returns:
        UtilizationResult with daily records, weekly rollups and workspace totals
    """
    threshold = clamp_threshold(threshold, minimum=min_threshold, maximum=max_threshold)
    result = UtilizationResult(threshold=threshold)
    demand = demand_by_user_day(entries)

    total_capacity = 0.0
    total_demand = 0.0
    overallocated_users = set()

    for user_id, capacity_days in capacity_map.items():
        user_demand = demand.get(user_id, {})
        for date, capacity in capacity_days.items():
            demand_hours = user_demand.get(date, 0.0)
            over_by = max(0.0, demand_hours - capacity * threshold)

            total_capacity += capacity
            total_demand += demand_hours
            if over_by > 0:
                overallocated_users.add(user_id)

            result.per_user_daily.append(UserDailyUtilization(
                user_id=user_id,
                date=date,
                capacity_hours=_hours(capacity),
                demand_hours=_hours(demand_hours),
                utilization=_ratio(utilization_ratio(demand_hours, capacity)),
                over_by_hours=_hours(over_by),
            ))

    result.per_user_weekly = build_weekly_rollups(result.per_user_daily)
    result.workspace_summary = WorkspaceSummary(
        total_capacity_hours=_hours(total_capacity),
        total_demand_hours=_hours(total_demand),
        average_utilization=_ratio(total_demand / total_capacity) if total_capacity > 0 else 0.0,
        overallocated_user_count=len(overallocated_users),
    )
    return result


def compute_overallocations(
    entries: Iterable[DemandEntry],
    capacity_map: CapacityMap,
    threshold: Optional[float] = None,
    default_capacity: float = DEFAULT_CAPACITY_HOURS,
    min_threshold: float = MIN_THRESHOLD,
    max_threshold: float = MAX_THRESHOLD,
) -> OverallocationResult:
    """
    Days where summed demand exceeds capacity * threshold, most over-allocated first.

    Each entry carries the task/allocation breakdown behind the demand.
    """
    threshold = clamp_threshold(threshold, minimum=min_threshold, maximum=max_threshold)

    grouped: Dict[Tuple[str, str], List[DemandEntry]] = defaultdict(list)
    for entry in entries:
        grouped[(entry.user_id, entry.date)].append(entry)

    overallocations: List[OverallocationEntry] = []
    affected_users = set()

    for (user_id, date), contributions in grouped.items():
        capacity = capacity_map.get(user_id, {}).get(date, default_capacity)
        total_demand = sum(e.demand_hours for e in contributions)
        over_by = total_demand - capacity * threshold
        if over_by <= 0:
            continue

        affected_users.add(user_id)
        overallocations.append(OverallocationEntry(
            user_id=user_id,
            date=date,
            capacity_hours=_hours(capacity),
            demand_hours=_hours(total_demand),
            over_by_hours=_hours(over_by),
            tasks=[
                ContributingDemand(
                    project_id=e.project_id,
                    demand_hours=e.demand_hours,
                    source=e.source,
                    task_id=e.task_id,
                )
                for e in contributions
            ],
        ))

    overallocations.sort(key=lambda e: e.over_by_hours, reverse=True)

    return OverallocationResult(
        entries=overallocations,
        total_overallocated_days=len(overallocations),
        affected_user_count=len(affected_users),
        threshold=threshold,
    )


class CapacityAnalytics(EngineBase):
    """
    Utilization and overallocation reports for a workspace.

    Asks the demand model for entries first, then the calendar for the
    capacity of exactly the implicated users, then joins them.
    """

    def __init__(self, db_adapter=None, config=None, calendar=None, demand_model=None):
        super().__init__(db_adapter, config)
        self.calendar = calendar or CapacityCalendar(db_adapter, config)
        self.demand_model = demand_model or DemandModel(db_adapter, config)

    def clamp_threshold(self, threshold: Optional[float] = None) -> float:
        return clamp_threshold(
            threshold,
            default=self.settings.DEFAULT_UTILIZATION_THRESHOLD,
            minimum=self.settings.MIN_UTILIZATION_THRESHOLD,
            maximum=self.settings.MAX_UTILIZATION_THRESHOLD,
        )

    async def compute_utilization(
        self,
        organization_id: str,
        workspace_id: str,
        from_date: DayLike,
        to_date: DayLike,
        user_ids: Optional[List[str]] = None,
        threshold: Optional[float] = None,
        include_disabled: bool = False,
    ) -> UtilizationResult:
        started = time.perf_counter()
        threshold = self.clamp_threshold(threshold)

        demand = await self.demand_model.build_daily_demand(
            organization_id,
            workspace_id,
            from_date,
            to_date,
            user_ids=user_ids,
            include_disabled=include_disabled,
        )

        users = collect_user_ids(demand.entries, user_ids)
        if not users:
            return UtilizationResult(threshold=threshold)

        capacity_map = await self.calendar.build_capacity_map(
            organization_id, workspace_id, users, from_date, to_date
        )
        result = compute_utilization(
            demand.entries,
            capacity_map,
            threshold,
            min_threshold=self.settings.MIN_UTILIZATION_THRESHOLD,
            max_threshold=self.settings.MAX_UTILIZATION_THRESHOLD,
        )

        self.logger.info(
            "capacity_utilization_computed",
            workspace_id=workspace_id,
            user_count=len(users),
            overallocated_user_count=result.workspace_summary.overallocated_user_count,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return result

    async def compute_overallocations(
        self,
        organization_id: str,
        workspace_id: str,
        from_date: DayLike,
        to_date: DayLike,
        user_ids: Optional[List[str]] = None,
        threshold: Optional[float] = None,
        include_disabled: bool = False,
    ) -> OverallocationResult:
        threshold = self.clamp_threshold(threshold)

        demand = await self.demand_model.build_daily_demand(
            organization_id,
            workspace_id,
            from_date,
            to_date,
            user_ids=user_ids,
            include_disabled=include_disabled,
        )

        users = collect_user_ids(demand.entries)
        if not users:
            return OverallocationResult(threshold=threshold)

        capacity_map = await self.calendar.build_capacity_map(
            organization_id, workspace_id, users, from_date, to_date
        )
        result = compute_overallocations(
            demand.entries,
            capacity_map,
            threshold,
            default_capacity=self.settings.DEFAULT_HOURS_PER_DAY,
            min_threshold=self.settings.MIN_UTILIZATION_THRESHOLD,
            max_threshold=self.settings.MAX_UTILIZATION_THRESHOLD,
        )

        self.logger.info(
            "capacity_overallocations_computed",
            workspace_id=workspace_id,
            overallocated_days=result.total_overallocated_days,
            affected_user_count=result.affected_user_count,
        )
        return result
