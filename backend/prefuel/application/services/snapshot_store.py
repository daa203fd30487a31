"""Snapshot store — the authoritative in-memory state, persisted on every write.

All entity collections live in one JSON-shaped dict. Mutations run to
completion without awaiting, so on the single-threaded event loop no other
request interleaves with them; that is the only atomicity the store relies
on. The compound operations (receive, convert, reset) additionally restore
their pre-operation copy if anything fails midway.

The snapshot file has exactly one writer. Running several processes against
the same file is not supported.
"""

from __future__ import annotations

import copy
import logging
import time
from collections import Counter
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from prefuel.application.interfaces import SnapshotRepository
from prefuel.application.schemas import AttendanceSchema, CamelModel, QuoteConvertRequest
from prefuel.application.seed import build_seed_snapshot, empty_snapshot
from prefuel.application.services.change_bus import ChangeBus
from prefuel.application.services.entity_rules import ENTITY_RULES, EntityRules
from prefuel.domain.entities import ChangeEvent, EntityType, Role
from prefuel.domain.exceptions import (
    ConflictError,
    DuplicateEntityError,
    EntityNotFoundError,
    FieldValidationError,
    ForbiddenError,
    PersistenceWarning,
)

logger = logging.getLogger(__name__)

Record = dict[str, Any]

MAX_PAGE_SIZE = 200
AUDIT_LOG_LIMIT = 500
ATTENDANCE_ENTITY = "attendance"

_STORE_OWNED = ("id", "createdAt", "updatedAt")
_ATTENDANCE_ROLES = frozenset({Role.ADMIN, Role.HR})
_RESET_ROLES = frozenset({Role.ADMIN})


def _now() -> str:
    """UTC timestamp in the same shape browsers produce with toISOString()."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _strip_owned(fields: Any) -> Any:
    if not isinstance(fields, dict):
        return fields
    return {k: v for k, v in fields.items() if k not in _STORE_OWNED}


def _filter_text(value: Any) -> str:
    """Text form a stored value is compared in; query strings spell booleans in lowercase."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower()
    return str(value)


def _field_errors(exc: ValidationError) -> list[dict[str, str]]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]) or "payload", "message": err["msg"]}
        for err in exc.errors()
    ]


@dataclass
class ListResult:
    items: list[Record]
    total: int

    def to_dict(self) -> dict[str, Any]:
        return {"items": self.items, "total": self.total}


@dataclass
class ReceiveResult:
    purchase_order: Record
    items: list[Record]

    def to_dict(self) -> dict[str, Any]:
        return {"purchaseOrder": self.purchase_order, "items": self.items}


class SnapshotStore:
    """Owns every entity collection; validates, persists and announces each change.

    Construct once per process (or per test), call :meth:`load`, and pass the
    instance to whoever needs it. Records handed out are copies; the only way
    to change state is through the methods below.
    """

    def __init__(
        self,
        repository: SnapshotRepository,
        bus: ChangeBus | None = None,
        *,
        seed: Callable[[], dict[str, Any]] = build_seed_snapshot,
    ) -> None:
        self._repository = repository
        self._bus = bus
        self._seed = seed
        self._data: dict[str, Any] = empty_snapshot()
        self.persistence_failures = 0

    # ── Lifecycle ───────────────────────────────────────────────────

    def load(self) -> None:
        """Load the last saved snapshot, falling back to the seed set."""
        data = self._repository.load()
        if data is None:
            logger.info("Starting from the built-in seed snapshot")
            self._data = self._normalise(self._seed())
            return
        try:
            self._data = self._normalise(data)
        except (TypeError, ValueError) as exc:
            logger.warning("Snapshot has an unexpected shape (%s) — using seed data", exc)
            self._data = self._normalise(self._seed())
            return
        logger.info(
            "Loaded snapshot: %s",
            ", ".join(f"{et.collection}={len(self._data[et.collection])}" for et in EntityType),
        )

    def close(self) -> None:
        """Flush the current state one last time at shutdown."""
        self._persist()

    @staticmethod
    def _normalise(data: dict[str, Any]) -> dict[str, Any]:
        """Fill in missing keys, rejecting wrongly-typed ones."""
        snapshot = empty_snapshot()
        for key, default in snapshot.items():
            if key not in data:
                continue
            value = data[key]
            if not isinstance(value, type(default)):
                raise TypeError(f"'{key}' should be {type(default).__name__}")
            snapshot[key] = value
        for key, value in data.items():
            snapshot.setdefault(key, value)
        for entity_type in EntityType:
            if not all(isinstance(r, dict) and r.get("id") for r in snapshot[entity_type.collection]):
                raise ValueError(f"'{entity_type.collection}' holds records without ids")
        return snapshot

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the whole document, exactly as it is persisted."""
        return copy.deepcopy(self._data)

    # ── Reads ───────────────────────────────────────────────────────

    def list(
        self,
        entity_type: EntityType,
        filters: dict[str, Any] | None = None,
        page: int | None = None,
        size: int | None = None,
    ) -> ListResult:
        """Filtered (field equality) and optionally paginated view of a collection.

        Paging applies only when ``size`` is given: ``size`` is clamped to
        [1, 200] and ``page`` is 1-indexed, defaulting to the first page.
        Without ``size`` everything matching is returned.
        """
        records = self._records(entity_type)
        if filters:
            records = [r for r in records if self._matches(r, filters)]
        total = len(records)

        if size is not None:
            size = min(MAX_PAGE_SIZE, max(1, size))
            page = max(1, page or 1)
            start = (page - 1) * size
            records = records[start : start + size]

        return ListResult(items=copy.deepcopy(records), total=total)

    def get(self, entity_type: EntityType, entity_id: str) -> Record:
        return copy.deepcopy(self._find(entity_type, entity_id))

    def get_attendance(self) -> Record:
        return dict(self._data["attendance"])

    @property
    def lead_sources(self) -> dict[str, int]:
        return dict(self._data["leadSources"])

    def audit_log(self, limit: int = 50) -> list[Record]:
        """Most recent audit entries, newest first."""
        return copy.deepcopy(self._data["auditLog"][-limit:][::-1])

    @staticmethod
    def _matches(record: Record, filters: dict[str, Any]) -> bool:
        for key, expected in filters.items():
            value = record.get(key)
            if value is None or _filter_text(value) != _filter_text(expected):
                return False
        return True

    # ── Writes ──────────────────────────────────────────────────────

    def create(
        self, entity_type: EntityType, fields: dict[str, Any], *, actor: str | None = None
    ) -> Record:
        rules = ENTITY_RULES[entity_type]
        record = self._validate(entity_type.value, rules.schema, _strip_owned(fields))
        if rules.check_transition:
            rules.check_transition(None, record)
        self._check_unique(entity_type, rules, record)
        if rules.derive:
            rules.derive(record)

        now = _now()
        record = {"id": self._next_id(entity_type), **record, "createdAt": now, "updatedAt": now}
        self._records(entity_type).insert(0, record)
        self._after_write(entity_type)

        self._commit(
            [ChangeEvent.created(entity_type.value, copy.deepcopy(record))],
            action="create",
            entity=entity_type.value,
            entity_id=record["id"],
            actor=actor,
        )
        return copy.deepcopy(record)

    def update(
        self,
        entity_type: EntityType,
        entity_id: str,
        patch: dict[str, Any],
        *,
        actor: str | None = None,
    ) -> Record:
        """Shallow-merge ``patch`` over the stored record and re-validate the result."""
        rules = ENTITY_RULES[entity_type]
        current = self._find(entity_type, entity_id)

        if not isinstance(patch, dict):
            raise FieldValidationError(
                entity_type.value, [{"field": "payload", "message": "Expected a JSON object"}]
            )
        merged = {**_strip_owned(current), **_strip_owned(patch)}
        candidate = self._validate(entity_type.value, rules.schema, merged)
        if rules.check_transition:
            rules.check_transition(current, candidate)
        self._check_unique(entity_type, rules, candidate, exclude_id=entity_id)
        if rules.derive:
            rules.derive(candidate)

        record = {
            "id": current["id"],
            **candidate,
            "createdAt": current.get("createdAt") or _now(),
            "updatedAt": _now(),
        }
        records = self._records(entity_type)
        records[records.index(current)] = record
        self._after_write(entity_type)

        self._commit(
            [ChangeEvent.updated(entity_type.value, copy.deepcopy(record))],
            action="update",
            entity=entity_type.value,
            entity_id=entity_id,
            actor=actor,
        )
        return copy.deepcopy(record)

    def delete(
        self,
        entity_type: EntityType,
        entity_id: str,
        *,
        role: Role | str | None = None,
        actor: str | None = None,
    ) -> Record:
        rules = ENTITY_RULES[entity_type]
        self._require_role(rules.delete_roles, role, f"delete {entity_type.value} records")
        current = self._find(entity_type, entity_id)

        self._records(entity_type).remove(current)
        self._after_write(entity_type)

        self._commit(
            [ChangeEvent.deleted(entity_type.value, entity_id)],
            action="delete",
            entity=entity_type.value,
            entity_id=entity_id,
            actor=actor,
        )
        return copy.deepcopy(current)

    def receive(self, purchase_order_id: str, *, actor: str | None = None) -> ReceiveResult:
        """Book a purchase order into stock.

        Every referenced item's stock rises by its line quantity and the order
        is marked received, all in one persisted write, announced as an item
        ``bulk`` followed by the order ``update``. Lines pointing at items that
        no longer exist are skipped.
        """
        with self._transaction(EntityType.ITEM, EntityType.PURCHASE_ORDER):
            order = self._find(EntityType.PURCHASE_ORDER, purchase_order_id)
            if order.get("status") == "received":
                raise ConflictError(f"Purchase order '{purchase_order_id}' is already received")

            now = _now()
            items = self._records(EntityType.ITEM)
            by_id = {item["id"]: item for item in items}
            for line in order.get("items") or []:
                item = by_id.get(line.get("itemId"))
                if item is None:
                    logger.warning(
                        "Purchase order %s references unknown item %s — skipped",
                        purchase_order_id,
                        line.get("itemId"),
                    )
                    continue
                item["stock"] = int(item.get("stock") or 0) + int(line.get("qty") or 0)
                item["updatedAt"] = now

            order["status"] = "received"
            order["receivedAt"] = now
            order["updatedAt"] = now

        result = ReceiveResult(purchase_order=copy.deepcopy(order), items=copy.deepcopy(items))
        self._commit(
            [
                ChangeEvent.bulk(EntityType.ITEM.value, copy.deepcopy(items)),
                ChangeEvent.updated(EntityType.PURCHASE_ORDER.value, copy.deepcopy(order)),
            ],
            action="receive",
            entity=EntityType.PURCHASE_ORDER.value,
            entity_id=purchase_order_id,
            actor=actor,
        )
        return result

    def convert_quote(
        self, quote_id: str, fields: dict[str, Any], *, actor: str | None = None
    ) -> dict[str, Record]:
        """Open a project for a quote and mark the quote accepted."""
        request = self._validate(EntityType.QUOTE.value, QuoteConvertRequest, fields)

        with self._transaction(EntityType.QUOTE, EntityType.PROJECT):
            quote = self._find(EntityType.QUOTE, quote_id)
            if quote.get("status") == "accepted" and quote.get("projectId"):
                raise ConflictError(
                    f"Quote '{quote_id}' was already converted to project '{quote['projectId']}'"
                )

            customer_name = request.get("customerName")
            if not customer_name:
                lead = self._find_optional(EntityType.LEAD, quote.get("leadId"))
                customer_name = lead["name"] if lead else "Customer"

            project_fields = self._validate(
                EntityType.PROJECT.value,
                ENTITY_RULES[EntityType.PROJECT].schema,
                {
                    "customerName": customer_name,
                    "siteAddress": request.get("siteAddress", ""),
                    "capacityKw": request.get("capacityKw", 0),
                    "status": "not_started",
                    "quoteId": quote_id,
                },
            )
            now = _now()
            project = {
                "id": self._next_id(EntityType.PROJECT),
                **project_fields,
                "createdAt": now,
                "updatedAt": now,
            }
            self._records(EntityType.PROJECT).insert(0, project)

            quote["status"] = "accepted"
            quote["projectId"] = project["id"]
            quote["updatedAt"] = now

        self._commit(
            [
                ChangeEvent.created(EntityType.PROJECT.value, copy.deepcopy(project)),
                ChangeEvent.updated(EntityType.QUOTE.value, copy.deepcopy(quote)),
            ],
            action="convert",
            entity=EntityType.QUOTE.value,
            entity_id=quote_id,
            actor=actor,
        )
        return {"quote": copy.deepcopy(quote), "project": copy.deepcopy(project)}

    def set_attendance(
        self,
        fields: dict[str, Any],
        *,
        role: Role | str | None = None,
        actor: str | None = None,
    ) -> Record:
        self._require_role(_ATTENDANCE_ROLES, role, "record attendance")
        attendance = self._validate(ATTENDANCE_ENTITY, AttendanceSchema, fields)
        self._data["attendance"] = attendance

        self._commit(
            [ChangeEvent.updated(ATTENDANCE_ENTITY, {"id": ATTENDANCE_ENTITY, **attendance})],
            action="update",
            entity=ATTENDANCE_ENTITY,
            entity_id=ATTENDANCE_ENTITY,
            actor=actor,
        )
        return dict(attendance)

    def reset(self, *, role: Role | str | None = None, actor: str | None = None) -> None:
        """Replace every collection with the seed set; one ``bulk`` event per collection.

        The id counter is kept so ids handed out before the reset never come back.
        """
        self._require_role(_RESET_ROLES, role, "reset data")
        seed = self._normalise(self._seed())
        seed["lastIdToken"] = max(self._data["lastIdToken"], seed["lastIdToken"])
        seed["auditLog"] = self._data["auditLog"]
        self._data = seed

        self._commit(
            [
                ChangeEvent.bulk(et.value, copy.deepcopy(self._data[et.collection]))
                for et in EntityType
            ],
            action="reset",
            entity="snapshot",
            entity_id=None,
            actor=actor,
        )
        logger.warning("Snapshot reset to seed data by %s", actor or "unknown")

    # ── Internals ───────────────────────────────────────────────────

    def _records(self, entity_type: EntityType) -> list[Record]:
        return self._data[entity_type.collection]

    def _find_optional(self, entity_type: EntityType, entity_id: str | None) -> Record | None:
        if not entity_id:
            return None
        for record in self._records(entity_type):
            if record.get("id") == entity_id:
                return record
        return None

    def _find(self, entity_type: EntityType, entity_id: str) -> Record:
        record = self._find_optional(entity_type, entity_id)
        if record is None:
            raise EntityNotFoundError(entity_type.value, entity_id)
        return record

    def _next_id(self, entity_type: EntityType) -> str:
        """Time-based token, strictly increasing across restarts so ids never repeat."""
        token = max(int(time.time() * 1000), self._data["lastIdToken"] + 1)
        self._data["lastIdToken"] = token
        return f"{entity_type.id_prefix}{token}"

    @staticmethod
    def _validate(entity_name: str, schema: type[CamelModel], fields: dict[str, Any]) -> Record:
        if not isinstance(fields, dict):
            raise FieldValidationError(
                entity_name, [{"field": "payload", "message": "Expected a JSON object"}]
            )
        try:
            model = schema.model_validate(fields)
        except ValidationError as exc:
            raise FieldValidationError(entity_name, _field_errors(exc)) from exc
        return model.model_dump(mode="json", by_alias=True)

    def _check_unique(
        self,
        entity_type: EntityType,
        rules: EntityRules,
        record: Record,
        exclude_id: str | None = None,
    ) -> None:
        for field in rules.unique_fields:
            value = record.get(field)
            if value is None:
                continue
            wanted = str(value).casefold()
            for other in self._records(entity_type):
                if other.get("id") == exclude_id:
                    continue
                if str(other.get(field, "")).casefold() == wanted:
                    raise DuplicateEntityError(entity_type.value, field, str(value))

    @staticmethod
    def _require_role(allowed: frozenset[Role] | None, role: Role | str | None, action: str) -> None:
        if allowed is None:
            return
        role_value = role.value if isinstance(role, Role) else role
        if role_value not in {r.value for r in allowed}:
            raise ForbiddenError(action, role_value)

    def _after_write(self, entity_type: EntityType) -> None:
        """Refresh aggregates that summarise a collection."""
        if entity_type is EntityType.LEAD:
            counts = Counter(str(lead.get("source") or "unknown") for lead in self._records(entity_type))
            self._data["leadSources"] = dict(counts)

    @contextmanager
    def _transaction(self, *entity_types: EntityType) -> Iterator[None]:
        """Restore the named collections (and the id counter) if the block raises."""
        checkpoint = {et.collection: copy.deepcopy(self._records(et)) for et in entity_types}
        last_token = self._data["lastIdToken"]
        try:
            yield
        except Exception:
            self._data.update(checkpoint)
            self._data["lastIdToken"] = last_token
            raise

    def _commit(
        self,
        events: list[ChangeEvent],
        *,
        action: str,
        entity: str,
        entity_id: str | None,
        actor: str | None,
    ) -> None:
        """Audit, persist, then announce — in that order, before the caller gets a result."""
        audit = self._data["auditLog"]
        audit.append({"at": _now(), "action": action, "entity": entity, "id": entity_id, "actor": actor})
        del audit[:-AUDIT_LOG_LIMIT]

        self._persist()

        if self._bus is not None:
            for event in events:
                self._bus.publish(event)

    def _persist(self) -> None:
        try:
            self._repository.save(self._data)
        except PersistenceWarning as exc:
            # The in-memory change stands and has been (or will be) announced.
            self.persistence_failures += 1
            logger.warning("Snapshot not persisted, change kept in memory only: %s", exc)
