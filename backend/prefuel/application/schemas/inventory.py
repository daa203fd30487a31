"""Pydantic DTOs for inventory items and purchase orders."""

from typing import Literal

from pydantic import Field

from .common import CamelModel

# "received" is reachable only through the receive operation.
PurchaseOrderStatus = Literal["pending", "ordered", "received"]


class ItemSchema(CamelModel):
    """A stocked part. ``sku`` is unique, case-insensitively."""

    name: str = Field(..., min_length=1, max_length=200, examples=["Solar Panel 500W"])
    sku: str = Field(..., min_length=1, max_length=64, examples=["SP-500"])
    unit: str = "pcs"
    stock: int = Field(0, ge=0)
    min_stock: int = Field(0, ge=0)


class PurchaseOrderLine(CamelModel):
    item_id: str = Field(..., min_length=1)
    qty: int = Field(..., ge=1)
    unit_cost: float = Field(0, ge=0)


class PurchaseOrderSchema(CamelModel):
    supplier: str = Field("Vendor", min_length=1, max_length=200)
    items: list[PurchaseOrderLine] = []
    status: PurchaseOrderStatus = "ordered"
