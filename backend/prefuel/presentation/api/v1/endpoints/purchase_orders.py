"""Purchase-order actions beyond plain CRUD."""

from typing import Any

from fastapi import APIRouter, Depends

from prefuel.application.services import SnapshotStore
from prefuel.domain.entities import EntityType, User
from prefuel.infrastructure.dependencies import get_current_user, get_snapshot_store

router = APIRouter(prefix=f"/{EntityType.PURCHASE_ORDER.route}", tags=["purchase-orders"])


@router.post("/{po_id}/receive")
async def receive_purchase_order(
    po_id: str,
    user: User = Depends(get_current_user),
    store: SnapshotStore = Depends(get_snapshot_store),
) -> dict[str, Any]:
    """Book the order's lines into stock and mark it received."""
    return store.receive(po_id, actor=user.id).to_dict()
