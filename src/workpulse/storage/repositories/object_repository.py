from typing import List, Optional, Dict, Any, Iterable
from sqlalchemy.orm import Session
from sqlalchemy import select
import logging

from workpulse.storage.models import ObjectModel
from .base import BaseRepository

logger = logging.getLogger(__name__)

class ObjectRepository(BaseRepository[ObjectModel]):
    """Repository for typed source objects (projects, tasks, allocations, sprints)."""

    def create(self, session: Session, entity: ObjectModel) -> ObjectModel:
        session.add(entity)
        # Flush to check for immediate constraints, caller commits
        session.flush()
        return entity

    def get(self, session: Session, id: str) -> Optional[ObjectModel]:
        return session.get(ObjectModel, id)

    def update(self, session: Session, id: str, updates: Dict[str, Any]) -> Optional[ObjectModel]:
        obj = self.get(session, id)
        if not obj:
            return None

        # Merge JSON data python side; reassign so the change is tracked
        if 'data' in updates and updates['data']:
            new_data = dict(obj.data)
            new_data.update(updates['data'])
            obj.data = new_data

        if 'status' in updates:
            obj.status = updates['status']

        obj.version += 1
        session.flush()
        return obj

    def list(self, session: Session, limit: int = 100, offset: int = 0) -> List[ObjectModel]:
        stmt = select(ObjectModel).where(ObjectModel.status != 'deleted').limit(limit).offset(offset)
        return list(session.scalars(stmt).all())

    def list_by_type(
        self,
        session: Session,
        type_id: str,
        organization_id: str,
        workspace_id: Optional[str] = None,
        ids: Optional[Iterable[str]] = None,
    ) -> List[ObjectModel]:
        """
        List live objects of one type inside a tenant scope.

        Args:
            session: Database session
            type_id: Object type ID (e.g., 'ot_task')
            organization_id: Owning organization
            workspace_id: Optional workspace filter
            ids: Optional explicit id filter

        Returns:
            Objects ordered by id
        """
        stmt = select(ObjectModel).where(
            ObjectModel.type_id == type_id,
            ObjectModel.organization_id == organization_id,
            ObjectModel.status != 'deleted',
        )
        if workspace_id is not None:
            stmt = stmt.where(ObjectModel.workspace_id == workspace_id)
        if ids is not None:
            stmt = stmt.where(ObjectModel.id.in_(list(ids)))
        stmt = stmt.order_by(ObjectModel.id)
        return list(session.scalars(stmt).all())

    def list_linked(
        self,
        session: Session,
        type_id: str,
        organization_id: str,
        field: str,
        value: str,
    ) -> List[ObjectModel]:
        """List live objects of a type whose data[field] equals value (e.g. tasks of a sprint)."""
        return [
            obj for obj in self.list_by_type(session, type_id, organization_id)
            if obj.data.get(field) == value
        ]
