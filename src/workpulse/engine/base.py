"""
Base class for engine services.

Provides session access, typed record loading and the per-call defaults
read from settings.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from workpulse.domain.errors import NotFoundError
from workpulse.domain.records import (
    AllocationRecord,
    ProjectRecord,
    SprintRecord,
    TaskRecord,
)
from workpulse.platform.config import Settings, settings as default_settings
from workpulse.platform.logging import get_logger
from workpulse.storage.base import StorageAdapter
from workpulse.storage.models import OT_ALLOCATION, OT_PROJECT, OT_SPRINT, OT_TASK, ObjectModel
from workpulse.storage.repositories import ObjectRepository


class EngineBase:
    """
    Base class for engine services.

    Provides:
    - Database access through the storage adapter
    - Loading of source objects as typed records
    - Settings-derived defaults injected into the pure functions
    """

    def __init__(
        self,
        db_adapter: Optional[StorageAdapter] = None,
        config: Optional[Settings] = None,
    ):
        """
        Initialize the service.

        Args:
            db_adapter: Storage adapter providing sessions
            config: Settings override; the process settings are used when omitted
        """
        self.db = db_adapter
        self.settings = config or default_settings
        self.objects = ObjectRepository()
        self.logger = get_logger(self.__class__.__name__)

    @contextmanager
    def get_session(self) -> Session:
        """Get a database session context."""
        if self.db is None:
            raise RuntimeError("Database adapter not configured")
        with self.db.get_session() as session:
            yield session

    def now(self) -> datetime:
        """Get current UTC datetime."""
        return datetime.now(timezone.utc)

    def load_projects(
        self,
        session: Session,
        organization_id: str,
        workspace_id: Optional[str] = None,
        project_ids: Optional[Iterable[str]] = None,
    ) -> List[ProjectRecord]:
        return [
            ProjectRecord.from_object(obj)
            for obj in self.objects.list_by_type(
                session, OT_PROJECT, organization_id, workspace_id, ids=project_ids
            )
        ]

    def load_tasks(
        self,
        session: Session,
        organization_id: str,
        workspace_id: Optional[str] = None,
        project_ids: Optional[Iterable[str]] = None,
    ) -> List[TaskRecord]:
        tasks = [
            TaskRecord.from_object(obj)
            for obj in self.objects.list_by_type(session, OT_TASK, organization_id, workspace_id)
        ]
        if project_ids is not None:
            wanted = set(project_ids)
            tasks = [t for t in tasks if t.project_id in wanted]
        return tasks

    def load_allocations(
        self,
        session: Session,
        organization_id: str,
        workspace_id: Optional[str] = None,
        project_ids: Optional[Iterable[str]] = None,
    ) -> List[AllocationRecord]:
        allocations = [
            AllocationRecord.from_object(obj)
            for obj in self.objects.list_by_type(session, OT_ALLOCATION, organization_id, workspace_id)
        ]
        if project_ids is not None:
            wanted = set(project_ids)
            allocations = [a for a in allocations if a.project_id in wanted]
        return allocations

    def load_sprints(
        self,
        session: Session,
        organization_id: str,
        project_id: str,
    ) -> List[SprintRecord]:
        return [
            SprintRecord.from_object(obj)
            for obj in self.objects.list_linked(
                session, OT_SPRINT, organization_id, 'project_id', project_id
            )
        ]

    def load_sprint_tasks(
        self,
        session: Session,
        organization_id: str,
        sprint_ids: Iterable[str],
    ) -> Dict[str, List[TaskRecord]]:
        """Live tasks grouped by sprint id."""
        wanted = set(sprint_ids)
        grouped: Dict[str, List[TaskRecord]] = {sprint_id: [] for sprint_id in wanted}
        for obj in self.objects.list_by_type(session, OT_TASK, organization_id):
            task = TaskRecord.from_object(obj)
            if task.sprint_id in wanted and not task.deleted:
                grouped[task.sprint_id].append(task)
        return grouped

    def get_object_or_raise(
        self,
        session: Session,
        object_id: str,
        type_id: str,
        organization_id: str,
    ) -> ObjectModel:
        obj = self.objects.get(session, object_id)
        if (
            obj is None
            or obj.type_id != type_id
            or obj.organization_id != organization_id
            or obj.status == 'deleted'
        ):
            raise NotFoundError(type_id.removeprefix('ot_'), object_id)
        return obj
