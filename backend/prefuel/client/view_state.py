"""Merging pushed change events into a locally held list.

``reduce_entities`` is the pure merge rule. ``ViewState`` wraps it for one
screen's worth of state: the list plus whichever record is open for editing.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, assert_never

from prefuel.domain.entities import ChangeEvent, ChangeType, EntityType

Record = dict[str, Any]

# Entities the dashboard counters are computed from.
_STATS_SOURCES = frozenset(
    {
        EntityType.LEAD.value,
        EntityType.ITEM.value,
        EntityType.PROJECT.value,
        EntityType.SERVICE_TICKET.value,
        "attendance",
    }
)


def refreshes_stats(event: ChangeEvent) -> bool:
    """True when a dashboard showing /stats should re-fetch after ``event``."""
    return event.entity in _STATS_SOURCES


def reduce_entities(items: Sequence[Record], event: ChangeEvent, entity: str) -> list[Record]:
    """Apply one change event to a list of records, returning a new list.

    Idempotent: applying the same event twice gives the same list as
    applying it once. Events for other entity types leave the list unchanged.
    """
    if event.entity != entity:
        return list(items)

    if event.type is ChangeType.CREATE:
        if any(r.get("id") == event.id for r in items):
            return list(items)
        return [dict(event.payload), *items]
    elif event.type is ChangeType.UPDATE:
        if not any(r.get("id") == event.id for r in items):
            return [dict(event.payload), *items]
        return [dict(event.payload) if r.get("id") == event.id else r for r in items]
    elif event.type is ChangeType.DELETE:
        return [r for r in items if r.get("id") != event.id]
    elif event.type is ChangeType.BULK:
        return [dict(r) for r in event.payload]
    else:
        assert_never(event.type)


@dataclass(frozen=True)
class Notice:
    """Tells the user something happened to the record they have open."""

    kind: Literal["deleted", "updated"]
    entity: str
    id: str
    message: str


class ViewState:
    """A list view plus an optional open record, kept current by change events."""

    def __init__(
        self,
        entity: EntityType | str,
        items: Iterable[Record] = (),
        *,
        on_notice: Callable[[Notice], None] | None = None,
    ) -> None:
        self.entity = entity.value if isinstance(entity, EntityType) else entity
        self._items: list[Record] = [dict(r) for r in items]
        self._open_id: str | None = None
        self._on_notice = on_notice
        self.notices: list[Notice] = []

    @property
    def items(self) -> list[Record]:
        return list(self._items)

    @property
    def open_id(self) -> str | None:
        return self._open_id

    @property
    def open_record(self) -> Record | None:
        if self._open_id is None:
            return None
        return next((r for r in self._items if r.get("id") == self._open_id), None)

    def open(self, entity_id: str) -> None:
        self._open_id = entity_id

    def close(self) -> None:
        self._open_id = None

    def resync(self, items: Iterable[Record]) -> None:
        """Replace the list with a fresh server listing, e.g. after a reconnect."""
        self._items = [dict(r) for r in items]
        if self._open_id is not None and self.open_record is None:
            self._notify_deleted(self._open_id)

    def apply(self, event: ChangeEvent) -> None:
        if event.entity != self.entity:
            return
        self._items = reduce_entities(self._items, event, self.entity)

        if self._open_id is None:
            return
        if event.type is ChangeType.DELETE and event.id == self._open_id:
            self._notify_deleted(self._open_id)
        elif event.type is ChangeType.UPDATE and event.id == self._open_id:
            self._notify(Notice("updated", self.entity, self._open_id,
                                "This record was updated by someone else"))
        elif event.type is ChangeType.BULK and self.open_record is None:
            self._notify_deleted(self._open_id)

    def _notify_deleted(self, entity_id: str) -> None:
        self._open_id = None
        self._notify(Notice("deleted", self.entity, entity_id, "This record was deleted"))

    def _notify(self, notice: Notice) -> None:
        self.notices.append(notice)
        if self._on_notice is not None:
            self._on_notice(notice)
