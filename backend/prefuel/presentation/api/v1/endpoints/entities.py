"""Generic CRUD endpoints, one router per entity collection.

Request bodies are taken as raw JSON objects; the store owns validation so
the same rules apply to HTTP callers and in-process callers alike.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request, status

from prefuel.application.schemas import ListResponse
from prefuel.application.services import SnapshotStore
from prefuel.domain.entities import EntityType, User
from prefuel.infrastructure.dependencies import get_current_user, get_snapshot_store

# Query parameters that are not field filters.
_RESERVED_PARAMS = frozenset({"page", "size"})


def _filters(request: Request) -> dict[str, str]:
    return {k: v for k, v in request.query_params.items() if k not in _RESERVED_PARAMS}


def build_entity_router(entity_type: EntityType) -> APIRouter:
    router = APIRouter(prefix=f"/{entity_type.route}", tags=[entity_type.route])

    @router.get("", response_model=ListResponse)
    async def list_records(
        request: Request,
        page: int | None = Query(None, ge=1, description="1-indexed; used only together with size"),
        size: int | None = Query(None, description="Clamped to 1..200; omit to list everything"),
        user: User = Depends(get_current_user),
        store: SnapshotStore = Depends(get_snapshot_store),
    ) -> ListResponse:
        """List records; any other query parameter filters by field equality."""
        return ListResponse(**store.list(entity_type, _filters(request), page=page, size=size).to_dict())

    @router.get("/{entity_id}")
    async def get_record(
        entity_id: str,
        user: User = Depends(get_current_user),
        store: SnapshotStore = Depends(get_snapshot_store),
    ) -> dict[str, Any]:
        return store.get(entity_type, entity_id)

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_record(
        data: dict[str, Any] = Body(...),
        user: User = Depends(get_current_user),
        store: SnapshotStore = Depends(get_snapshot_store),
    ) -> dict[str, Any]:
        return store.create(entity_type, data, actor=user.id)

    @router.put("/{entity_id}")
    async def update_record(
        entity_id: str,
        data: dict[str, Any] = Body(...),
        user: User = Depends(get_current_user),
        store: SnapshotStore = Depends(get_snapshot_store),
    ) -> dict[str, Any]:
        """Shallow-merge the body into the stored record."""
        return store.update(entity_type, entity_id, data, actor=user.id)

    @router.delete("/{entity_id}")
    async def delete_record(
        entity_id: str,
        user: User = Depends(get_current_user),
        store: SnapshotStore = Depends(get_snapshot_store),
    ) -> dict[str, Any]:
        store.delete(entity_type, entity_id, role=user.role, actor=user.id)
        return {"ok": True, "id": entity_id}

    return router


def entity_routers() -> list[APIRouter]:
    return [build_entity_router(entity_type) for entity_type in EntityType]
