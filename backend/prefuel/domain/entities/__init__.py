from .change_event import ChangeEvent, ChangeType
from .entity_type import EntityType
from .user import Role, User

__all__ = [
    "ChangeEvent",
    "ChangeType",
    "EntityType",
    "Role",
    "User",
]
