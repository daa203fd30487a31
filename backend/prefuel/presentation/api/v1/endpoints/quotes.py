"""Quote actions beyond plain CRUD."""

from typing import Any

from fastapi import APIRouter, Body, Depends

from prefuel.application.services import SnapshotStore
from prefuel.domain.entities import EntityType, User
from prefuel.infrastructure.dependencies import get_current_user, get_snapshot_store

router = APIRouter(prefix=f"/{EntityType.QUOTE.route}", tags=["quotes"])


@router.post("/{quote_id}/convert")
async def convert_quote(
    quote_id: str,
    data: dict[str, Any] | None = Body(None),
    user: User = Depends(get_current_user),
    store: SnapshotStore = Depends(get_snapshot_store),
) -> dict[str, Any]:
    """Open a project for an accepted quote; returns both records."""
    return store.convert_quote(quote_id, data or {}, actor=user.id)
