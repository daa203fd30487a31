"""Dashboard counters: plain tallies over the current snapshot."""

from typing import Any

from prefuel.application.services.snapshot_store import SnapshotStore
from prefuel.domain.entities import EntityType

_LEAD_STATUSES = ("new", "qualified", "quoted", "won", "lost")
_PROJECT_STATUSES = ("working", "completed", "not_started")


class StatsService:
    def __init__(self, store: SnapshotStore):
        self._store = store

    def summary(self) -> dict[str, Any]:
        leads = self._store.list(EntityType.LEAD).items
        items = self._store.list(EntityType.ITEM).items
        projects = self._store.list(EntityType.PROJECT).items
        tickets = self._store.list(EntityType.SERVICE_TICKET).items

        pipeline = {status: sum(1 for lead in leads if lead.get("status") == status) for status in _LEAD_STATUSES}
        return {
            "leads": {"total": len(leads), "bySource": self._store.lead_sources},
            "pipeline": {"total": len(leads), **pipeline},
            "inventory": {
                "items": len(items),
                "lowStock": sum(1 for it in items if (it.get("stock") or 0) <= (it.get("minStock") or 0)),
            },
            "projects": {
                status: sum(1 for p in projects if p.get("status") == status)
                for status in _PROJECT_STATUSES
            },
            "serviceTickets": {
                "open": sum(1 for t in tickets if t.get("status") != "resolved"),
            },
            "attendance": self._store.get_attendance(),
        }
