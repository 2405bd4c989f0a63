"""
Pytest configuration and shared fixtures.
"""

import os
import sys
import pytest

sys.path.append(os.path.join(os.getcwd(), "src"))

from workpulse.storage import SqlAdapter, SqlConfig
from workpulse.storage.models import ObjectModel


ORG_ID = "org_1"
WORKSPACE_ID = "ws_1"


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> None:
    """Set up test environment variables."""
    os.environ.setdefault("APP_ENV", "test")
    os.environ.setdefault("DEBUG", "true")
    os.environ.setdefault("LOG_LEVEL", "warning")


@pytest.fixture
def db_adapter(tmp_path):
    """SQL adapter backed by a throwaway SQLite file with the schema created."""
    adapter = SqlAdapter(SqlConfig(DATABASE_URL=f"sqlite:///{tmp_path / 'workpulse.db'}"))
    adapter.connect()
    adapter.create_schema()
    yield adapter
    adapter.close()


@pytest.fixture
def session(db_adapter):
    with db_adapter.get_session() as session:
        yield session


def seed_object(adapter, obj_id: str, type_id: str, data: dict,
                org: str = ORG_ID, workspace: str = WORKSPACE_ID, status: str = 'active'):
    """Helper to store a source object."""
    with adapter.get_session() as session:
        session.add(ObjectModel(
            id=obj_id,
            type_id=type_id,
            organization_id=org,
            workspace_id=workspace,
            data=data,
            status=status,
        ))


@pytest.fixture
def seed(db_adapter):
    """Fixture to store source objects in the test database."""
    def _seed(obj_id, type_id, data, **kwargs):
        seed_object(db_adapter, obj_id, type_id, data, **kwargs)
    return _seed
