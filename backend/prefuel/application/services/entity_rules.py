"""Per-entity rules the snapshot store applies: schema, uniqueness, derived fields, gates."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from prefuel.application.schemas import (
    AnnouncementSchema,
    CamelModel,
    ComplaintSchema,
    DocumentSchema,
    InvoiceSchema,
    ItemSchema,
    LeadSchema,
    ProjectSchema,
    PurchaseOrderSchema,
    QuoteSchema,
    ServiceTicketSchema,
    TaskSchema,
)
from prefuel.application.services.totals import (
    derive_invoice,
    derive_purchase_order,
    derive_quote,
)
from prefuel.domain.entities import EntityType, Role
from prefuel.domain.exceptions import ConflictError

Record = dict[str, Any]


@dataclass(frozen=True)
class EntityRules:
    """How one entity type is validated and maintained.

    ``check_transition`` receives the stored record (None on create) and the
    validated candidate, and raises ConflictError for a state change that may
    only happen through a dedicated operation.
    """

    schema: type[CamelModel]
    unique_fields: tuple[str, ...] = ()
    derive: Callable[[Record], None] | None = None
    delete_roles: frozenset[Role] | None = None
    check_transition: Callable[[Record | None, Record], None] | None = None


def _purchase_order_transition(current: Record | None, candidate: Record) -> None:
    was_received = current is not None and current.get("status") == "received"
    if candidate.get("status") == "received" and not was_received:
        raise ConflictError("Purchase orders are marked received only by receiving them")
    if was_received and candidate.get("status") != "received":
        raise ConflictError(f"Purchase order '{current['id']}' is already received")


_ELEVATED = frozenset({Role.ADMIN})

ENTITY_RULES: dict[EntityType, EntityRules] = {
    EntityType.LEAD: EntityRules(LeadSchema, delete_roles=_ELEVATED),
    EntityType.QUOTE: EntityRules(QuoteSchema, derive=derive_quote),
    EntityType.PROJECT: EntityRules(ProjectSchema),
    EntityType.ITEM: EntityRules(ItemSchema, unique_fields=("sku",), delete_roles=_ELEVATED),
    EntityType.PURCHASE_ORDER: EntityRules(
        PurchaseOrderSchema,
        derive=derive_purchase_order,
        check_transition=_purchase_order_transition,
    ),
    EntityType.INVOICE: EntityRules(InvoiceSchema, derive=derive_invoice),
    EntityType.COMPLAINT: EntityRules(ComplaintSchema),
    EntityType.TASK: EntityRules(TaskSchema),
    EntityType.DOCUMENT: EntityRules(DocumentSchema),
    EntityType.ANNOUNCEMENT: EntityRules(AnnouncementSchema),
    EntityType.SERVICE_TICKET: EntityRules(ServiceTicketSchema),
}
