"""
Workpulse - Capacity, Demand and Delivery Analytics

This package contains the workforce analytics core:
- platform: Cross-cutting concerns (configuration, logging)
- storage: Database adapters, models and repositories (SQLAlchemy)
- domain: Records parsed from stored objects, day arithmetic, errors
- engine: Capacity calendar, demand model, utilization analytics,
  sprint capacity/burndown, sprint lifecycle and velocity
"""

__version__ = "0.1.0"
