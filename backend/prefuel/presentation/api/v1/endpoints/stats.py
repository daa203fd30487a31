"""Dashboard counters."""

from typing import Any

from fastapi import APIRouter, Depends

from prefuel.application.services import StatsService
from prefuel.domain.entities import User
from prefuel.infrastructure.dependencies import get_current_user, get_stats_service

router = APIRouter(prefix="/stats", tags=["Stats"])


@router.get("")
async def get_stats(
    user: User = Depends(get_current_user),
    stats: StatsService = Depends(get_stats_service),
) -> dict[str, Any]:
    return stats.summary()
