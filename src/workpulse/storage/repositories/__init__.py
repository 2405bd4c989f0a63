from .object_repository import ObjectRepository
from .capacity_override_repository import CapacityOverrideRepository

__all__ = ["ObjectRepository", "CapacityOverrideRepository"]
