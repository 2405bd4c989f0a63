from datetime import date
from typing import List, Optional, Dict, Any, Iterable
from sqlalchemy.orm import Session
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
import logging

from workpulse.storage.models import CapacityOverrideModel
from .base import BaseRepository

logger = logging.getLogger(__name__)

class CapacityOverrideRepository(BaseRepository[CapacityOverrideModel]):
    """Repository for per-user, per-day capacity overrides."""

    def create(self, session: Session, entity: CapacityOverrideModel) -> CapacityOverrideModel:
        session.add(entity)
        session.flush()
        return entity

    def get(self, session: Session, id: int) -> Optional[CapacityOverrideModel]:
        return session.get(CapacityOverrideModel, id)

    def update(self, session: Session, id: int, updates: Dict[str, Any]) -> Optional[CapacityOverrideModel]:
        override = self.get(session, id)
        if not override:
            return None
        if 'hours' in updates:
            override.hours = updates['hours']
        session.flush()
        return override

    def list(self, session: Session, limit: int = 100, offset: int = 0) -> List[CapacityOverrideModel]:
        stmt = select(CapacityOverrideModel).limit(limit).offset(offset)
        return list(session.scalars(stmt).all())

    def get_by_key(
        self,
        session: Session,
        organization_id: str,
        workspace_id: str,
        user_id: str,
        day: date,
    ) -> Optional[CapacityOverrideModel]:
        stmt = select(CapacityOverrideModel).where(
            CapacityOverrideModel.organization_id == organization_id,
            CapacityOverrideModel.workspace_id == workspace_id,
            CapacityOverrideModel.user_id == user_id,
            CapacityOverrideModel.day == day,
        )
        return session.scalars(stmt).first()

    def list_for_users(
        self,
        session: Session,
        organization_id: str,
        workspace_id: str,
        user_ids: Iterable[str],
        from_date: date,
        to_date: date,
    ) -> List[CapacityOverrideModel]:
        """Overrides for the given users inside [from_date, to_date], ordered by user then day."""
        user_ids = list(user_ids)
        if not user_ids:
            return []

        stmt = select(CapacityOverrideModel).where(
            CapacityOverrideModel.organization_id == organization_id,
            CapacityOverrideModel.workspace_id == workspace_id,
            CapacityOverrideModel.user_id.in_(user_ids),
            CapacityOverrideModel.day >= from_date,
            CapacityOverrideModel.day <= to_date,
        ).order_by(CapacityOverrideModel.user_id, CapacityOverrideModel.day)
        return list(session.scalars(stmt).all())

    def upsert(
        self,
        session: Session,
        organization_id: str,
        workspace_id: str,
        user_id: str,
        day: date,
        hours: float,
    ) -> CapacityOverrideModel:
        """
        Replace the hours of an existing override for the key, or create one.

        The insert runs in a savepoint. When a concurrent writer created the
        same key first, the unique constraint rejects the insert and the
        committed row is updated instead.
        """
        existing = self.get_by_key(session, organization_id, workspace_id, user_id, day)
        if existing is None:
            entity = CapacityOverrideModel(
                organization_id=organization_id,
                workspace_id=workspace_id,
                user_id=user_id,
                day=day,
                hours=hours,
            )
            try:
                with session.begin_nested():
                    session.add(entity)
                return entity
            except IntegrityError:
                logger.info(f"Capacity override for {user_id} on {day} created concurrently; updating")
                existing = self.get_by_key(session, organization_id, workspace_id, user_id, day)
                if existing is None:
                    raise

        existing.hours = hours
        session.flush()
        return existing
