"""Daily attendance aggregate."""

from typing import Any

from fastapi import APIRouter, Body, Depends

from prefuel.application.services import SnapshotStore
from prefuel.domain.entities import User
from prefuel.infrastructure.dependencies import get_current_user, get_snapshot_store

router = APIRouter(prefix="/attendance", tags=["Attendance"])


@router.get("")
async def get_attendance(
    user: User = Depends(get_current_user),
    store: SnapshotStore = Depends(get_snapshot_store),
) -> dict[str, Any]:
    return store.get_attendance()


@router.put("")
async def set_attendance(
    data: dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    store: SnapshotStore = Depends(get_snapshot_store),
) -> dict[str, Any]:
    """Replace today's figures. HR and admin only."""
    return store.set_attendance(data, role=user.role, actor=user.id)
