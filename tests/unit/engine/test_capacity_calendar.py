"""
Tests for the capacity calendar.
"""

import pytest

from workpulse.domain.errors import ValidationError
from workpulse.engine.capacity_calendar import (
    CapacityCalendar,
    CapacityOverrideEntry,
    build_capacity_map,
    enumerate_dates,
    validate_capacity_hours,
)

ORG_ID = "org_1"
WORKSPACE_ID = "ws_1"

# Monday 2026-03-02 .. Sunday 2026-03-08
WEEK = ("2026-03-02", "2026-03-08")


class TestBuildCapacityMap:

    def test_default_policy(self):
        capacity = build_capacity_map(["user_1"], *WEEK)

        assert list(capacity["user_1"].values()) == [8.0, 8.0, 8.0, 8.0, 8.0, 0.0, 0.0]
        assert list(capacity["user_1"]) == enumerate_dates(*WEEK)

    def test_override_changes_only_its_day(self):
        overrides = [CapacityOverrideEntry("user_1", "2026-03-04", 4.0)]
        capacity = build_capacity_map(["user_1"], *WEEK, overrides)

        assert capacity["user_1"]["2026-03-04"] == 4.0
        assert [h for d, h in capacity["user_1"].items() if d != "2026-03-04"] == [
            8.0, 8.0, 8.0, 8.0, 0.0, 0.0
        ]

    def test_override_wins_on_weekend_and_zero_day_off(self):
        overrides = [
            CapacityOverrideEntry("user_1", "2026-03-07", 5.0),
            CapacityOverrideEntry("user_1", "2026-03-03", 0.0),
        ]
        capacity = build_capacity_map(["user_1"], *WEEK, overrides)

        assert capacity["user_1"]["2026-03-07"] == 5.0
        assert capacity["user_1"]["2026-03-03"] == 0.0

    def test_overrides_for_other_users_or_days_ignored(self):
        overrides = [
            CapacityOverrideEntry("user_2", "2026-03-04", 1.0),
            CapacityOverrideEntry("user_1", "2026-04-01", 1.0),
        ]
        capacity = build_capacity_map(["user_1"], *WEEK, overrides)

        assert set(capacity) == {"user_1"}
        assert "2026-04-01" not in capacity["user_1"]

    def test_empty_users(self):
        assert build_capacity_map([], *WEEK) == {}

    def test_custom_hours_per_day(self):
        capacity = build_capacity_map(["user_1"], "2026-03-02", "2026-03-02", hours_per_day=6.0)
        assert capacity["user_1"]["2026-03-02"] == 6.0


class TestCapacityCalendarService:

    @pytest.fixture
    def calendar(self, db_adapter):
        return CapacityCalendar(db_adapter)

    @pytest.mark.asyncio
    async def test_set_then_build(self, calendar):
        await calendar.set_daily_capacity(ORG_ID, WORKSPACE_ID, "user_1", "2026-03-04", 4)

        capacity = await calendar.build_capacity_map(ORG_ID, WORKSPACE_ID, ["user_1", "user_2"], *WEEK)

        assert capacity["user_1"]["2026-03-04"] == 4.0
        assert capacity["user_2"]["2026-03-04"] == 8.0

    @pytest.mark.asyncio
    async def test_set_is_upsert(self, calendar):
        await calendar.set_daily_capacity(ORG_ID, WORKSPACE_ID, "user_1", "2026-03-04", 4)
        await calendar.set_daily_capacity(ORG_ID, WORKSPACE_ID, "user_1", "2026-03-04", 4)
        entry = await calendar.set_daily_capacity(ORG_ID, WORKSPACE_ID, "user_1", "2026-03-04", 2)

        assert entry == CapacityOverrideEntry("user_1", "2026-03-04", 2.0)
        stored = await calendar.get_daily_capacity(ORG_ID, WORKSPACE_ID, ["user_1"], *WEEK)
        assert stored == [entry]

    @pytest.mark.asyncio
    async def test_overrides_scoped_to_workspace(self, calendar):
        await calendar.set_daily_capacity(ORG_ID, "ws_other", "user_1", "2026-03-04", 1)

        capacity = await calendar.build_capacity_map(ORG_ID, WORKSPACE_ID, ["user_1"], *WEEK)
        assert capacity["user_1"]["2026-03-04"] == 8.0

    @pytest.mark.asyncio
    async def test_negative_hours_rejected(self, calendar):
        with pytest.raises(ValidationError):
            await calendar.set_daily_capacity(ORG_ID, WORKSPACE_ID, "user_1", "2026-03-04", -1)

        assert await calendar.get_daily_capacity(ORG_ID, WORKSPACE_ID, ["user_1"], *WEEK) == []

    @pytest.mark.asyncio
    async def test_zero_hours_accepted(self, calendar):
        entry = await calendar.set_daily_capacity(ORG_ID, WORKSPACE_ID, "user_1", "2026-03-04", 0)
        assert entry.hours == 0.0

    @pytest.mark.asyncio
    async def test_empty_user_list(self, calendar):
        assert await calendar.build_capacity_map(ORG_ID, WORKSPACE_ID, [], *WEEK) == {}
        assert await calendar.get_daily_capacity(ORG_ID, WORKSPACE_ID, [], *WEEK) == []


@pytest.mark.parametrize("hours", ["four", "", [4], None, float("nan"), -0.5])
def test_invalid_capacity_hours(hours):
    with pytest.raises(ValidationError) as exc:
        validate_capacity_hours(hours)
    assert exc.value.code == "VALIDATION_ERROR"


def test_numeric_strings_accepted():
    assert validate_capacity_hours("4.5") == 4.5


@pytest.mark.asyncio
async def test_set_daily_capacity_rejects_non_numeric_hours(db_adapter):
    calendar = CapacityCalendar(db_adapter)

    with pytest.raises(ValidationError):
        await calendar.set_daily_capacity(ORG_ID, WORKSPACE_ID, "user_1", "2026-03-04", "lots")
