"""Administrative maintenance endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query

from prefuel.application.services import SnapshotStore
from prefuel.domain.entities import Role, User
from prefuel.infrastructure.dependencies import get_snapshot_store, require_role

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/reset")
async def reset_data(
    user: User = Depends(require_role(Role.ADMIN)),
    store: SnapshotStore = Depends(get_snapshot_store),
) -> dict[str, Any]:
    """Restore the demo data set. Connected clients receive one bulk event per collection."""
    store.reset(role=user.role, actor=user.id)
    return {"ok": True}


@router.get("/audit-log")
async def audit_log(
    limit: int = Query(50, ge=1, le=500),
    user: User = Depends(require_role(Role.ADMIN)),
    store: SnapshotStore = Depends(get_snapshot_store),
) -> list[dict[str, Any]]:
    """Most recent audit entries, newest first."""
    return store.audit_log(limit)
