"""Domain entity for change events — one published message per mutation."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ChangeType(str, Enum):
    """Kinds of mutation a change event can describe."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    BULK = "bulk"


@dataclass(frozen=True)
class ChangeEvent:
    """A transient description of one mutation to one entity collection.

    ``create``/``update`` carry the full resulting record in ``payload``,
    ``delete`` carries only ``id`` and ``bulk`` carries the complete
    replacement list for the collection. Consumers replace by id; a payload
    is never a partial patch.
    """

    type: ChangeType
    entity: str
    id: str | None = None
    payload: Any = None

    def __post_init__(self) -> None:
        if self.type in (ChangeType.CREATE, ChangeType.UPDATE):
            if not self.id or not isinstance(self.payload, dict):
                raise ValueError(f"{self.type.value} event needs an id and a record payload")
        elif self.type is ChangeType.DELETE:
            if not self.id or self.payload is not None:
                raise ValueError("delete event carries an id and no payload")
        elif self.type is ChangeType.BULK:
            if self.id is not None or not isinstance(self.payload, list):
                raise ValueError("bulk event carries a list payload and no id")

    @classmethod
    def created(cls, entity: str, record: dict[str, Any]) -> "ChangeEvent":
        return cls(ChangeType.CREATE, entity, record["id"], record)

    @classmethod
    def updated(cls, entity: str, record: dict[str, Any]) -> "ChangeEvent":
        return cls(ChangeType.UPDATE, entity, record["id"], record)

    @classmethod
    def deleted(cls, entity: str, entity_id: str) -> "ChangeEvent":
        return cls(ChangeType.DELETE, entity, entity_id)

    @classmethod
    def bulk(cls, entity: str, records: list[dict[str, Any]]) -> "ChangeEvent":
        return cls(ChangeType.BULK, entity, None, records)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the wire shape, omitting absent ``id``/``payload``."""
        data: dict[str, Any] = {"type": self.type.value, "entity": self.entity}
        if self.id is not None:
            data["id"] = self.id
        if self.payload is not None:
            data["payload"] = self.payload
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChangeEvent":
        """Parse the wire shape. Raises ValueError on an unknown type or bad shape."""
        if not isinstance(data, dict):
            raise ValueError("Change event must be a JSON object")
        return cls(
            type=ChangeType(data.get("type")),
            entity=str(data.get("entity", "")),
            id=data.get("id"),
            payload=data.get("payload"),
        )
