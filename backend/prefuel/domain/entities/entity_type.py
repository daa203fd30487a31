"""Entity-type registry — the named collections held in a snapshot."""

from enum import Enum


class EntityType(str, Enum):
    """Domain record types. The value is the name used in change events."""

    LEAD = "lead"
    QUOTE = "quote"
    PROJECT = "project"
    ITEM = "item"
    PURCHASE_ORDER = "purchaseOrder"
    INVOICE = "invoice"
    COMPLAINT = "complaint"
    TASK = "task"
    DOCUMENT = "document"
    ANNOUNCEMENT = "announcement"
    SERVICE_TICKET = "serviceTicket"

    @property
    def collection(self) -> str:
        """Top-level key of this type's list in the snapshot document."""
        return _COLLECTIONS[self]

    @property
    def id_prefix(self) -> str:
        return _ID_PREFIXES[self]

    @property
    def route(self) -> str:
        """URL path segment under ``/api/v1``."""
        return _ROUTES[self]


_COLLECTIONS: dict[EntityType, str] = {
    EntityType.LEAD: "leads",
    EntityType.QUOTE: "quotes",
    EntityType.PROJECT: "projects",
    EntityType.ITEM: "items",
    EntityType.PURCHASE_ORDER: "purchaseOrders",
    EntityType.INVOICE: "invoices",
    EntityType.COMPLAINT: "complaints",
    EntityType.TASK: "tasks",
    EntityType.DOCUMENT: "documents",
    EntityType.ANNOUNCEMENT: "announcements",
    EntityType.SERVICE_TICKET: "serviceTickets",
}

_ID_PREFIXES: dict[EntityType, str] = {
    EntityType.LEAD: "l",
    EntityType.QUOTE: "q",
    EntityType.PROJECT: "p",
    EntityType.ITEM: "i",
    EntityType.PURCHASE_ORDER: "po",
    EntityType.INVOICE: "inv",
    EntityType.COMPLAINT: "cmp",
    EntityType.TASK: "t",
    EntityType.DOCUMENT: "d",
    EntityType.ANNOUNCEMENT: "ann",
    EntityType.SERVICE_TICKET: "svc",
}

_ROUTES: dict[EntityType, str] = {
    EntityType.LEAD: "leads",
    EntityType.QUOTE: "quotes",
    EntityType.PROJECT: "projects",
    EntityType.ITEM: "items",
    EntityType.PURCHASE_ORDER: "purchase-orders",
    EntityType.INVOICE: "invoices",
    EntityType.COMPLAINT: "complaints",
    EntityType.TASK: "tasks",
    EntityType.DOCUMENT: "documents",
    EntityType.ANNOUNCEMENT: "announcements",
    EntityType.SERVICE_TICKET: "service-tickets",
}
