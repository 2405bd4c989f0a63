from datetime import date, datetime
from typing import Optional, Dict, Any
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import (
    String, Integer, Float, Date, JSON, DateTime, Index, UniqueConstraint, func
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP


class Base(DeclarativeBase):
    pass

# Helper to support both Postgres JSONB and generic JSON (for SQLite tests)
JSON_TYPE = JSON().with_variant(JSONB, 'postgresql')
TIMESTAMP_TYPE = DateTime(timezone=True).with_variant(TIMESTAMP(timezone=True), 'postgresql')

# Object type ids for source data owned by the collaborator layer
OT_PROJECT = "ot_project"
OT_TASK = "ot_task"
OT_ALLOCATION = "ot_allocation"
OT_SPRINT = "ot_sprint"

# --- Objects ---

class ObjectModel(Base):
    """Generic typed object. Projects, tasks, allocations and sprints are stored here."""
    __tablename__ = "objects"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    type_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    organization_id: Mapped[Optional[str]] = mapped_column(String, index=True)
    workspace_id: Mapped[Optional[str]] = mapped_column(String, index=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON_TYPE, nullable=False)
    status: Mapped[str] = mapped_column(String, server_default='active', index=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now(), onupdate=func.now())
    created_by: Mapped[Optional[str]] = mapped_column(String)
    version: Mapped[int] = mapped_column(Integer, server_default='1')

    __table_args__ = (
        Index('ix_objects_scope_type', 'organization_id', 'workspace_id', 'type_id'),
    )

# --- Capacity Overrides ---

class CapacityOverrideModel(Base):
    """Per-day availability override for one user. Unique per (org, workspace, user, date)."""
    __tablename__ = "capacity_overrides"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[str] = mapped_column(String, nullable=False)
    workspace_id: Mapped[str] = mapped_column(String, nullable=False)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    day: Mapped[date] = mapped_column("date", Date, nullable=False)
    hours: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint(
            'organization_id', 'workspace_id', 'user_id', 'date',
            name='uq_capacity_override_key'
        ),
        Index('ix_capacity_overrides_scope', 'organization_id', 'workspace_id', 'date'),
    )
