"""Request/response client for explicit user actions.

Reads always go straight to the server. Writes go straight through while
online; while offline they are queued in arrival order and acknowledged with
a :class:`QueuedWrite` receipt. Coming back online replays the queue.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from prefuel.client.errors import ApiError, TransportError, error_from_response
from prefuel.domain.entities import EntityType

logger = logging.getLogger(__name__)

DelayedFailureCallback = Callable[["QueuedWrite", ApiError], Awaitable[None] | None]

# Statuses that reject the queued write itself; anything else is retried later.
REFUSAL_STATUSES = frozenset({400, 403, 404, 409, 422})


@dataclass
class QueuedWrite:
    """Receipt for a write accepted while offline. Not an entity."""

    method: str
    path: str
    body: dict[str, Any] | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    queued_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    status: str = "queued"


def _route(entity: EntityType | str) -> str:
    return entity.route if isinstance(entity, EntityType) else entity


class RequestGateway:
    def __init__(
        self,
        base_url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        token: str | None = None,
        on_delayed_failure: DelayedFailureCallback | None = None,
        api_prefix: str = "/api/v1",
        timeout: float = 10.0,
    ) -> None:
        self._api_url = f"{base_url.rstrip('/')}{api_prefix}"
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None
        self.token = token
        self._on_delayed_failure = on_delayed_failure
        self._online = True
        self._queue: deque[QueuedWrite] = deque()
        self._replay_lock = asyncio.Lock()

    # ── Connectivity ────────────────────────────────────────────────

    @property
    def online(self) -> bool:
        return self._online

    @property
    def pending(self) -> list[QueuedWrite]:
        """Queued writes, oldest first."""
        return list(self._queue)

    async def set_online(self, online: bool) -> int:
        """Record connectivity. Going online replays the queue; returns writes replayed."""
        was_online, self._online = self._online, online
        if online and not was_online:
            logger.info("Back online with %d queued write(s)", len(self._queue))
            return await self.replay()
        return 0

    async def replay(self) -> int:
        """Send queued writes in order, oldest first.

        A refusal of the write itself (400, 403, 404, 409, 422) pops it and
        reports it through ``on_delayed_failure``. A transport failure, a 401
        or a 5xx stops the replay and leaves that write and everything behind
        it queued for the next attempt.
        """
        sent = 0
        async with self._replay_lock:
            while self._queue and self._online:
                write = self._queue[0]
                try:
                    await self._send(write.method, write.path, json=write.body)
                except TransportError as exc:
                    logger.warning("Replay paused at %s %s: %s", write.method, write.path, exc)
                    break
                except ApiError as exc:
                    if exc.status_code not in REFUSAL_STATUSES:
                        logger.warning("Replay paused at %s %s: %s", write.method, write.path, exc)
                        break
                    self._queue.popleft()
                    logger.warning("Queued %s %s was refused: %s", write.method, write.path, exc)
                    await self._report_failure(write, exc)
                else:
                    self._queue.popleft()
                sent += 1
        return sent

    async def _report_failure(self, write: QueuedWrite, error: ApiError) -> None:
        if self._on_delayed_failure is None:
            return
        try:
            result = self._on_delayed_failure(write, error)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("on_delayed_failure callback failed")

    # ── Auth ────────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Sign in and keep the token for later calls. Returns the user profile."""
        data = await self._send("POST", "/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    async def me(self) -> dict[str, Any]:
        return await self._send("GET", "/auth/me")

    async def health(self) -> bool:
        try:
            await self._send("GET", "/health")
        except (ApiError, TransportError):
            return False
        return True

    # ── Reads ───────────────────────────────────────────────────────

    async def list(
        self,
        entity: EntityType | str,
        filters: dict[str, Any] | None = None,
        *,
        page: int | None = None,
        size: int | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = dict(filters or {})
        if page is not None:
            params["page"] = page
        if size is not None:
            params["size"] = size
        return await self._send("GET", f"/{_route(entity)}", params=params)

    async def get(self, entity: EntityType | str, entity_id: str) -> dict[str, Any]:
        return await self._send("GET", f"/{_route(entity)}/{entity_id}")

    # ── Writes ──────────────────────────────────────────────────────

    async def create(self, entity: EntityType | str, fields: dict[str, Any]) -> dict[str, Any] | QueuedWrite:
        return await self._write("POST", f"/{_route(entity)}", fields)

    async def update(
        self, entity: EntityType | str, entity_id: str, patch: dict[str, Any]
    ) -> dict[str, Any] | QueuedWrite:
        return await self._write("PUT", f"/{_route(entity)}/{entity_id}", patch)

    async def delete(self, entity: EntityType | str, entity_id: str) -> dict[str, Any] | QueuedWrite:
        return await self._write("DELETE", f"/{_route(entity)}/{entity_id}")

    async def receive(self, purchase_order_id: str) -> dict[str, Any] | QueuedWrite:
        return await self._write("POST", f"/{EntityType.PURCHASE_ORDER.route}/{purchase_order_id}/receive")

    async def convert_quote(
        self, quote_id: str, fields: dict[str, Any] | None = None
    ) -> dict[str, Any] | QueuedWrite:
        return await self._write("POST", f"/{EntityType.QUOTE.route}/{quote_id}/convert", fields or {})

    async def set_attendance(self, fields: dict[str, Any]) -> dict[str, Any] | QueuedWrite:
        return await self._write("PUT", "/attendance", fields)

    async def _write(
        self, method: str, path: str, body: dict[str, Any] | None = None
    ) -> dict[str, Any] | QueuedWrite:
        # Anything still queued must reach the server first.
        if not self._online or self._queue:
            write = QueuedWrite(method=method, path=path, body=body)
            self._queue.append(write)
            logger.info("Queued %s %s (%d pending)", method, path, len(self._queue))
            return write
        return await self._send(method, path, json=body)

    # ── Transport ───────────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._http_client.request(
                method,
                f"{self._api_url}{path}",
                headers=self._headers(),
                json=json,
                params=params,
            )
        except httpx.TransportError as exc:
            raise TransportError(f"{method} {path}: {exc}") from exc

        if response.is_error:
            raise error_from_response(response)
        if not response.content:
            return None
        return response.json()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()
