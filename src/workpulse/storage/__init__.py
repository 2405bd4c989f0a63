from .base import StorageAdapter
from .sql_adapter import SqlAdapter, SqlConfig
from .models import Base, ObjectModel, CapacityOverrideModel

__all__ = [
    "StorageAdapter",
    "SqlAdapter",
    "SqlConfig",
    "Base",
    "ObjectModel",
    "CapacityOverrideModel",
]
