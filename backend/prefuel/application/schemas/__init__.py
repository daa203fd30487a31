from .auth import LoginRequest, LoginResponse, UserProfile
from .common import CamelModel, ListResponse
from .inventory import ItemSchema, PurchaseOrderLine, PurchaseOrderSchema
from .invoice import InvoiceLine, InvoiceSchema
from .lead import LeadSchema
from .project import ProjectSchema
from .quote import QuoteConvertRequest, QuoteLine, QuoteSchema
from .service import ComplaintSchema, ServiceTicketSchema
from .workspace import AnnouncementSchema, AttendanceSchema, DocumentSchema, TaskSchema

__all__ = [
    "AnnouncementSchema",
    "AttendanceSchema",
    "CamelModel",
    "ComplaintSchema",
    "DocumentSchema",
    "InvoiceLine",
    "InvoiceSchema",
    "ItemSchema",
    "LeadSchema",
    "ListResponse",
    "LoginRequest",
    "LoginResponse",
    "ProjectSchema",
    "PurchaseOrderLine",
    "PurchaseOrderSchema",
    "QuoteConvertRequest",
    "QuoteLine",
    "QuoteSchema",
    "ServiceTicketSchema",
    "TaskSchema",
    "UserProfile",
]
