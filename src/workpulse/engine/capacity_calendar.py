"""
Capacity Calendar

Availability per person per day.

Default policy: weekdays get ``DEFAULT_CAPACITY_HOURS``, weekends get 0.
A stored override for an exact (user, date) always replaces the default,
including weekend days and explicit zero-hour days off.

Usage:
    calendar = CapacityCalendar(db_adapter)

    # Availability per user per day
    capacity_map = await calendar.build_capacity_map(
        org_id, workspace_id, ['user_1'], '2026-03-02', '2026-03-08'
    )

    # Administrative override (upsert)
    await calendar.set_daily_capacity(org_id, workspace_id, 'user_1', '2026-03-04', 4)
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List

from workpulse.domain.dates import (
    DayLike,
    day_str,
    enumerate_dates,
    is_weekday,
    iter_days,
    require_day,
)
from workpulse.domain.errors import ValidationError
from workpulse.storage.repositories import CapacityOverrideRepository
from .base import EngineBase

DEFAULT_CAPACITY_HOURS = 8.0
WEEKEND_CAPACITY_HOURS = 0.0

CapacityMap = Dict[str, Dict[str, float]]

__all__ = [
    "DEFAULT_CAPACITY_HOURS",
    "WEEKEND_CAPACITY_HOURS",
    "CapacityMap",
    "CapacityOverrideEntry",
    "CapacityCalendar",
    "enumerate_dates",
    "build_capacity_map",
    "validate_capacity_hours",
]


@dataclass
class CapacityOverrideEntry:
    """A stored availability override."""
    user_id: str
    date: str
    hours: float

    @classmethod
    def from_model(cls, model) -> "CapacityOverrideEntry":
        return cls(user_id=model.user_id, date=day_str(model.day), hours=float(model.hours))


def validate_capacity_hours(hours: float) -> float:
    if hours is None or isinstance(hours, bool):
        raise ValidationError("Capacity hours are required", {"hours": hours})
    try:
        hours = float(hours)
    except (TypeError, ValueError):
        raise ValidationError("Capacity hours must be a number", {"hours": hours})
    if math.isnan(hours) or math.isinf(hours) or hours < 0:
        raise ValidationError(
            "Capacity hours must be a non-negative number", {"hours": hours}
        )
    return hours


def build_capacity_map(
    user_ids: Iterable[str],
    from_date: DayLike,
    to_date: DayLike,
    overrides: Iterable[CapacityOverrideEntry] = (),
    hours_per_day: float = DEFAULT_CAPACITY_HOURS,
) -> CapacityMap:
    """
    Seed every day of the range with the weekday/weekend default and overlay overrides.

    Args:
        user_ids: Users to include; duplicates collapse
        from_date: First day (inclusive)
        to_date: Last day (inclusive)
        overrides: Stored overrides; entries outside the users/range are ignored
        hours_per_day: Weekday default

    Returns:
        {user_id: {'YYYY-MM-DD': hours}} with days in ascending order
    """
    start = require_day(from_date, "from_date")
    end = require_day(to_date, "to_date")

    defaults = {
        day_str(day): (hours_per_day if is_weekday(day) else WEEKEND_CAPACITY_HOURS)
        for day in iter_days(start, end)
    }

    capacity: CapacityMap = {}
    for user_id in user_ids:
        if user_id not in capacity:
            capacity[user_id] = dict(defaults)

    for override in overrides:
        user_days = capacity.get(override.user_id)
        if user_days is not None and override.date in user_days:
            user_days[override.date] = float(override.hours)

    return capacity


class CapacityCalendar(EngineBase):
    """
    Reads and writes capacity overrides and builds per-user capacity maps.
    """

    def __init__(self, db_adapter=None, config=None, overrides_repository=None):
        super().__init__(db_adapter, config)
        self.overrides = overrides_repository or CapacityOverrideRepository()

    async def get_daily_capacity(
        self,
        organization_id: str,
        workspace_id: str,
        user_ids: List[str],
        from_date: DayLike,
        to_date: DayLike,
    ) -> List[CapacityOverrideEntry]:
        """Stored overrides for the users in the range, ordered by user then date."""
        if not user_ids:
            return []

        start = require_day(from_date, "from_date")
        end = require_day(to_date, "to_date")
        if end < start:
            return []

        with self.get_session() as session:
            models = self.overrides.list_for_users(
                session, organization_id, workspace_id, user_ids, start, end
            )
            return [CapacityOverrideEntry.from_model(m) for m in models]

    async def build_capacity_map(
        self,
        organization_id: str,
        workspace_id: str,
        user_ids: List[str],
        from_date: DayLike,
        to_date: DayLike,
    ) -> CapacityMap:
        """
        Availability per user per day for the range.

        An empty user list yields an empty map.
        """
        if not user_ids:
            return {}

        overrides = await self.get_daily_capacity(
            organization_id, workspace_id, user_ids, from_date, to_date
        )
        return build_capacity_map(
            user_ids,
            from_date,
            to_date,
            overrides,
            hours_per_day=self.settings.DEFAULT_HOURS_PER_DAY,
        )

    async def set_daily_capacity(
        self,
        organization_id: str,
        workspace_id: str,
        user_id: str,
        date: DayLike,
        hours: float,
    ) -> CapacityOverrideEntry:
        """
        Create or replace the override for (org, workspace, user, date).

        Raises:
            ValidationError: hours is negative or not a number
        """
        hours = validate_capacity_hours(hours)
        day = require_day(date, "date")

        with self.get_session() as session:
            model = self.overrides.upsert(
                session, organization_id, workspace_id, user_id, day, hours
            )
            entry = CapacityOverrideEntry.from_model(model)

        self.logger.info(
            "capacity_override_set",
            workspace_id=workspace_id,
            user_id=user_id,
            date=entry.date,
            hours=entry.hours,
        )
        return entry
