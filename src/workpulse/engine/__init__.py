"""
Workpulse Engine

Capacity and demand:
- CapacityCalendar: Default/override availability per person per day
- DemandModel: Daily workload from task schedules with allocation fallback
- CapacityAnalytics: Utilization, weekly rollups and overallocations

Sprints:
- SprintMetrics: Sprint capacity report and burndown/burnup buckets
- SprintLifecycle: Status transitions with scope freezing
- VelocityCalculator: Rolling completed points across recent sprints
"""

from .capacity_calendar import CapacityCalendar
from .demand_model import DemandModel
from .capacity_analytics import CapacityAnalytics
from .sprint_metrics import SprintMetrics
from .sprint_lifecycle import SprintLifecycle
from .velocity import VelocityCalculator

__all__ = [
    # Capacity and demand
    "CapacityCalendar",
    "DemandModel",
    "CapacityAnalytics",
    # Sprints
    "SprintMetrics",
    "SprintLifecycle",
    "VelocityCalculator",
]
