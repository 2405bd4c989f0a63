"""
Tests for the demand model.
"""

from datetime import date

import pytest

from workpulse.domain.records import AllocationRecord, ProjectRecord, TaskRecord
from workpulse.engine.demand_model import (
    DemandModel,
    DemandSource,
    build_daily_demand,
    estimated_effort,
)
from workpulse.storage.models import OT_ALLOCATION, OT_PROJECT, OT_TASK

# Monday 2026-03-02 .. Friday 2026-03-13
RANGE = ("2026-03-02", "2026-03-13")
MON, TUE, WED, FRI = date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 4), date(2026, 3, 6)


def project(project_id="proj_1", enabled=True, **kwargs):
    return ProjectRecord(id=project_id, name=project_id, capacity_enabled=enabled, **kwargs)


def task(task_id="task_1", project_id="proj_1", assignee="user_1", start=MON, end=FRI, **kwargs):
    return TaskRecord(
        id=task_id,
        project_id=project_id,
        assignee_id=assignee,
        planned_start=start,
        planned_end=end,
        **kwargs
    )


def allocation(user="user_1", project_id="proj_1", percent=50.0, start=MON, end=FRI):
    return AllocationRecord(
        id=f"alloc_{user}_{project_id}",
        project_id=project_id,
        user_id=user,
        allocation_percent=percent,
        start_date=start,
        end_date=end,
    )


class TestEffortPrecedence:

    def test_remaining_hours_win_over_estimate(self):
        result = build_daily_demand(
            [project()], [task(estimate_hours=40, remaining_hours=10)], [], *RANGE
        )

        assert [e.demand_hours for e in result.entries] == [2.0] * 5
        assert {e.source for e in result.entries} == {DemandSource.TASK_ESTIMATE}
        assert result.demand_modeled_hours == 10.0

    def test_estimate_adjusted_by_percent_complete(self):
        result = build_daily_demand(
            [project()], [task(estimate_hours=20, percent_complete=50)], [], *RANGE
        )

        assert result.demand_modeled_hours == 10.0
        assert result.entries[0].source == DemandSource.TASK_ESTIMATE

    def test_duration_spread_without_estimates(self):
        result = build_daily_demand([project()], [task(start=MON, end=WED)], [], *RANGE)

        assert [(e.date, e.demand_hours) for e in result.entries] == [
            ("2026-03-02", 8.0), ("2026-03-03", 8.0), ("2026-03-04", 8.0)
        ]
        assert {e.source for e in result.entries} == {DemandSource.TASK_DURATION_SPREAD}
        assert result.demand_modeled_hours == 24.0

    def test_fully_complete_estimate_falls_back_to_duration(self):
        effort = estimated_effort(task(estimate_hours=16, percent_complete=100))
        assert effort is None

    def test_per_day_hours_rounded(self):
        result = build_daily_demand(
            [project()], [task(start=MON, end=WED, remaining_hours=10)], [], *RANGE
        )

        assert [e.demand_hours for e in result.entries] == [3.33, 3.33, 3.33]
        assert result.demand_modeled_hours == 9.99


class TestTaskWindow:

    def test_window_clamped_to_range(self):
        result = build_daily_demand(
            [project()],
            [task(start=date(2026, 2, 23), end=date(2026, 3, 3))],
            [],
            *RANGE
        )

        # Only Mon/Tue fall inside the range; spread uses the clamped workdays
        assert [e.date for e in result.entries] == ["2026-03-02", "2026-03-03"]
        assert result.demand_modeled_hours == 16.0

    def test_weekends_excluded(self):
        result = build_daily_demand(
            [project()], [task(start=FRI, end=date(2026, 3, 9), remaining_hours=8)], [], *RANGE
        )

        assert [e.date for e in result.entries] == ["2026-03-06", "2026-03-09"]
        assert [e.demand_hours for e in result.entries] == [4.0, 4.0]

    def test_weekend_only_window_contributes_nothing(self):
        result = build_daily_demand(
            [project()], [task(start=date(2026, 3, 7), end=date(2026, 3, 8))], [], *RANGE
        )

        assert result.entries == []
        assert result.unmodeled_reasons.no_dates == 0

    def test_window_outside_range(self):
        result = build_daily_demand(
            [project()], [task(start=date(2026, 4, 1), end=date(2026, 4, 3))], [], *RANGE
        )
        assert result.entries == []

    def test_generic_dates_used_when_planned_missing(self):
        generic = TaskRecord(
            id="task_1", project_id="proj_1", assignee_id="user_1",
            start_date=MON, due_date=TUE,
        )
        result = build_daily_demand([project()], [generic], [], *RANGE)

        assert [e.date for e in result.entries] == ["2026-03-02", "2026-03-03"]

    def test_planned_dates_preferred(self):
        both = TaskRecord(
            id="task_1", project_id="proj_1", assignee_id="user_1",
            planned_start=WED, planned_end=WED, start_date=MON, due_date=FRI,
        )
        result = build_daily_demand([project()], [both], [], *RANGE)

        assert [e.date for e in result.entries] == ["2026-03-04"]

    def test_inverted_request_range(self):
        result = build_daily_demand([project()], [task()], [], "2026-03-13", "2026-03-02")

        assert result.entries == []
        assert result.demand_modeled_hours == 0.0


class TestUnmodeledClassification:

    def test_unassigned_task(self):
        result = build_daily_demand(
            [project()], [task(assignee=None, remaining_hours=6)], [], *RANGE
        )

        assert result.entries == []
        assert result.unmodeled_reasons.no_assignee == 1
        assert result.demand_unmodeled_hours == 0.0

    def test_unassigned_hours_included_on_request(self):
        result = build_daily_demand(
            [project()], [task(assignee=None, remaining_hours=6)], [], *RANGE,
            include_unassigned=True,
        )

        assert result.unmodeled_reasons.no_assignee == 1
        assert result.demand_unmodeled_hours == 6.0

    def test_task_without_dates(self):
        result = build_daily_demand(
            [project()], [task(start=None, end=None, estimate_hours=12)], [], *RANGE
        )

        assert result.entries == []
        assert result.unmodeled_reasons.no_dates == 1
        assert result.demand_unmodeled_hours == 12.0

    def test_milestone_is_neither_modeled_nor_unmodeled(self):
        result = build_daily_demand([project()], [task(is_milestone=True)], [], *RANGE)

        assert result.entries == []
        assert result.unmodeled_reasons.no_assignee == 0
        assert result.unmodeled_reasons.no_dates == 0

    def test_disabled_project_counted_once(self):
        tasks = [task(task_id=f"task_{i}", project_id="proj_off") for i in range(3)]
        result = build_daily_demand(
            [project(), project("proj_off", enabled=False)], tasks, [], *RANGE
        )

        assert result.entries == []
        assert result.unmodeled_reasons.capacity_disabled == 1

    def test_include_disabled(self):
        result = build_daily_demand(
            [project("proj_off", enabled=False)],
            [task(project_id="proj_off", remaining_hours=5)],
            [],
            *RANGE,
            include_disabled=True,
        )

        assert result.unmodeled_reasons.capacity_disabled == 0
        assert result.demand_modeled_hours == 5.0

    def test_deleted_task_ignored(self):
        result = build_daily_demand([project()], [task(deleted=True, assignee=None)], [], *RANGE)

        assert result.entries == []
        assert result.unmodeled_reasons.no_assignee == 0


class TestAllocationFallback:

    def test_task_pair_suppresses_allocation(self):
        result = build_daily_demand(
            [project()],
            [task(remaining_hours=10)],
            [allocation("user_1", percent=100)],
            *RANGE
        )

        assert {e.source for e in result.entries} == {DemandSource.TASK_ESTIMATE}
        assert result.demand_modeled_hours == 10.0

    def test_allocation_used_for_other_pairs(self):
        result = build_daily_demand(
            [project(), project("proj_2")],
            [task(remaining_hours=10)],
            [allocation("user_1", "proj_2", percent=25), allocation("user_2", percent=50)],
            *RANGE
        )

        fallback = [e for e in result.entries if e.source == DemandSource.ALLOCATION_FALLBACK]
        assert {(e.user_id, e.project_id, e.demand_hours) for e in fallback} == {
            ("user_1", "proj_2", 2.0),
            ("user_2", "proj_1", 4.0),
        }
        assert all(e.task_id is None for e in fallback)
        assert result.demand_modeled_hours == 10.0 + 5 * 2.0 + 5 * 4.0

    def test_allocation_falls_back_to_project_dates(self):
        alloc = allocation("user_2", start=None, end=None)
        result = build_daily_demand(
            [project(start_date=MON, end_date=TUE)], [], [alloc], *RANGE
        )

        assert [e.date for e in result.entries] == ["2026-03-02", "2026-03-03"]

    def test_allocation_without_any_dates_skipped(self):
        alloc = allocation("user_2", start=None, end=None)
        result = build_daily_demand([project()], [], [alloc], *RANGE)

        assert result.entries == []

    def test_allocation_clamped_to_range_weekdays(self):
        alloc = allocation("user_2", percent=100, start=date(2026, 3, 12), end=date(2026, 3, 20))
        result = build_daily_demand([project()], [], [alloc], *RANGE)

        assert [e.date for e in result.entries] == ["2026-03-12", "2026-03-13"]
        assert result.demand_modeled_hours == 16.0

    def test_user_filter(self):
        result = build_daily_demand(
            [project()],
            [task(remaining_hours=5), task("task_2", assignee="user_2", remaining_hours=5)],
            [allocation("user_3")],
            *RANGE,
            user_ids=["user_2"],
        )

        assert {e.user_id for e in result.entries} == {"user_2"}


class TestDemandModelService:

    @pytest.mark.asyncio
    async def test_builds_from_stored_objects(self, db_adapter, seed):
        seed("proj_1", OT_PROJECT, {"name": "Web", "capacity_enabled": True})
        seed("proj_2", OT_PROJECT, {"name": "Legacy", "capacity_enabled": False})
        seed("task_1", OT_TASK, {
            "project_id": "proj_1", "assignee_id": "user_1",
            "planned_start": "2026-03-02", "planned_end": "2026-03-06",
            "estimate_hours": 40, "remaining_hours": 10,
        })
        seed("task_2", OT_TASK, {"project_id": "proj_1", "planned_start": "2026-03-02"})
        seed("task_3", OT_TASK, {"project_id": "proj_2", "assignee_id": "user_1"})
        seed("alloc_1", OT_ALLOCATION, {
            "project_id": "proj_1", "user_id": "user_1", "allocation_percent": 100,
            "start_date": "2026-03-02", "end_date": "2026-03-13",
        })
        seed("task_other_ws", OT_TASK, {
            "project_id": "proj_1", "assignee_id": "user_9",
            "planned_start": "2026-03-02", "planned_end": "2026-03-02",
        }, workspace="ws_2")

        model = DemandModel(db_adapter)
        result = await model.build_daily_demand("org_1", "ws_1", *RANGE)

        assert result.demand_modeled_hours == 10.0
        assert {e.user_id for e in result.entries} == {"user_1"}
        assert result.unmodeled_reasons.no_assignee == 1
        assert result.unmodeled_reasons.capacity_disabled == 1
