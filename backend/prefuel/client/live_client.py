"""Reconnecting consumer of the server's change stream.

``LiveClient`` keeps one SSE connection open to ``/api/v1/stream`` and hands
every change event to a callback, in arrival order. When the connection
drops it waits with exponential backoff and reconnects, for as long as the
client is running.

Usage:
    client = LiveClient("http://localhost:4000", on_event=view.apply)
    await client.start()
    ...
    await client.stop()
"""

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import httpx

from prefuel.client.sse import iter_frames
from prefuel.domain.entities import ChangeEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[ChangeEvent], Awaitable[None] | None]
StatusCallback = Callable[[bool], Awaitable[None] | None]
ConnectCallback = Callable[[], Awaitable[None] | None]

# Consecutive failures before a reachable host network is reported offline.
OFFLINE_AFTER_FAILURES = 2


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    BACKOFF = "backoff"
    STOPPED = "stopped"


_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING, ConnectionState.STOPPED}),
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.CONNECTED, ConnectionState.BACKOFF, ConnectionState.STOPPED}
    ),
    ConnectionState.CONNECTED: frozenset({ConnectionState.BACKOFF, ConnectionState.STOPPED}),
    ConnectionState.BACKOFF: frozenset({ConnectionState.CONNECTING, ConnectionState.STOPPED}),
    ConnectionState.STOPPED: frozenset(),
}


class StreamRefusedError(Exception):
    """The stream endpoint answered, but not with an event stream."""


class ExponentialBackoff:
    """Delay sequence ``floor, floor*factor, ...`` capped at ``cap``."""

    def __init__(self, floor: float = 1.0, cap: float = 30.0, factor: float = 2.0) -> None:
        if floor <= 0 or cap < floor or factor < 1:
            raise ValueError("Backoff needs 0 < floor <= cap and factor >= 1")
        self.floor = floor
        self.cap = cap
        self.factor = factor
        self.failures = 0

    def next_delay(self) -> float:
        delay = min(self.cap, self.floor * self.factor**self.failures)
        self.failures += 1
        return delay

    def reset(self) -> None:
        self.failures = 0


async def _call(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class LiveClient:
    """Keeps a live change stream open and reports connectivity.

    Args:
        base_url: Server root, e.g. ``http://localhost:4000``.
        on_event: Receives each :class:`ChangeEvent`; may be sync or async.
            The next event is not read until it returns.
        http_client: Injected ``httpx.AsyncClient``. One is created (and
            closed on :meth:`stop`) when omitted.
        on_status: Called with ``True``/``False`` whenever the online flag flips.
        on_connect: Called after every successful (re)connect, before any
            event from that connection is delivered. Use it to re-list.
        network_online: Reports whether the host network is up at all.
        backoff: Reconnect delay policy; 1s doubling to 30s by default.
        probe_interval: Seconds between health probes; ``None`` disables them.
        read_timeout: Longest silence tolerated on an open stream. Keep it
            above the server heartbeat interval.
    """

    def __init__(
        self,
        base_url: str,
        on_event: EventCallback,
        *,
        http_client: httpx.AsyncClient | None = None,
        on_status: StatusCallback | None = None,
        on_connect: ConnectCallback | None = None,
        network_online: Callable[[], bool] | None = None,
        backoff: ExponentialBackoff | None = None,
        probe_interval: float | None = None,
        read_timeout: float | None = 60.0,
        stream_path: str = "/api/v1/stream",
        health_path: str = "/api/v1/health",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._on_event = on_event
        self._on_status = on_status
        self._on_connect = on_connect
        self._network_online = network_online or (lambda: True)
        self._backoff = backoff or ExponentialBackoff()
        self._probe_interval = probe_interval
        self._read_timeout = read_timeout
        self._stream_url = f"{self._base_url}{stream_path}"
        self._health_url = f"{self._base_url}{health_path}"

        self._http_client = http_client
        self._owns_client = http_client is None

        self._state = ConnectionState.DISCONNECTED
        self._state_changed = asyncio.Event()
        self._online: bool | None = None
        self._consecutive_failures = 0
        self._wake = asyncio.Event()
        self._run_task: asyncio.Task[None] | None = None
        self._probe_task: asyncio.Task[None] | None = None

    # ── Public surface ──────────────────────────────────────────────

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def online(self) -> bool | None:
        """Last reported online flag; ``None`` until the first connect attempt settles."""
        return self._online

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    async def start(self) -> None:
        if self._state is ConnectionState.STOPPED:
            raise RuntimeError("A stopped LiveClient cannot be restarted")
        if self._run_task is not None:
            return
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(10.0))
        self._run_task = asyncio.create_task(self._run(), name="live-client")
        if self._probe_interval:
            self._probe_task = asyncio.create_task(self._probe_loop(), name="live-client-probe")

    async def stop(self) -> None:
        """Close the stream for good. Pending reconnects are cancelled."""
        if self._state is ConnectionState.STOPPED:
            return
        self._set_state(ConnectionState.STOPPED)
        self._wake.set()

        for task in (self._probe_task, self._run_task):
            if task is None or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._probe_task = None
        self._run_task = None

        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        logger.info("Live client stopped")

    async def wait_for_state(self, state: ConnectionState, timeout: float | None = None) -> None:
        """Block until the connection reaches ``state``."""

        async def _wait() -> None:
            while self._state is not state:
                await self._state_changed.wait()

        await asyncio.wait_for(_wait(), timeout)

    async def probe(self) -> bool:
        """One liveness check against the health endpoint."""
        if self._http_client is None:
            return False
        try:
            response = await self._http_client.get(self._health_url)
        except httpx.HTTPError as exc:
            logger.debug("Health probe failed: %s", exc)
            return False
        return response.status_code == 200

    # ── Connection loop ─────────────────────────────────────────────

    async def _run(self) -> None:
        while self._state is not ConnectionState.STOPPED:
            self._set_state(ConnectionState.CONNECTING)
            try:
                await self._consume_stream()
                logger.info("Change stream closed by server")
            except (httpx.HTTPError, httpx.StreamError, StreamRefusedError) as exc:
                logger.info("Change stream failed: %s", exc)
            except Exception:
                logger.exception("Change stream reader crashed")

            if self._state is ConnectionState.STOPPED:
                break
            await self._record_failure()

            delay = self._backoff.next_delay()
            self._set_state(ConnectionState.BACKOFF)
            logger.debug("Reconnecting in %.2fs", delay)
            await self._sleep(delay)

    async def _consume_stream(self) -> None:
        assert self._http_client is not None
        timeout = httpx.Timeout(10.0, read=self._read_timeout)
        async with self._http_client.stream(
            "GET",
            self._stream_url,
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            timeout=timeout,
        ) as response:
            content_type = response.headers.get("content-type", "")
            if response.status_code != 200 or not content_type.startswith("text/event-stream"):
                raise StreamRefusedError(
                    f"HTTP {response.status_code} ({content_type or 'no content type'})"
                )

            await self._mark_connected()
            async for frame in iter_frames(response.aiter_lines()):
                if frame.event != "message":
                    # ``ready`` and any other named control events
                    continue
                await self._deliver(frame.data)

    async def _mark_connected(self) -> None:
        self._consecutive_failures = 0
        self._backoff.reset()
        self._set_state(ConnectionState.CONNECTED)
        await self._set_online(True)
        logger.info("Change stream connected to %s", self._stream_url)
        try:
            await _call(self._on_connect)
        except Exception:
            logger.exception("on_connect hook failed")

    async def _deliver(self, data: str) -> None:
        try:
            event = ChangeEvent.from_dict(json.loads(data))
        except ValueError as exc:
            logger.warning("Skipping malformed change event: %s", exc)
            return
        try:
            await _call(self._on_event, event)
        except Exception:
            logger.exception("Change event handler failed for %s %s", event.type.value, event.entity)

    async def _record_failure(self) -> None:
        self._consecutive_failures += 1
        if not self._network_online() or self._consecutive_failures >= OFFLINE_AFTER_FAILURES:
            await self._set_online(False)

    async def _sleep(self, delay: float) -> None:
        """Backoff wait; ends early if woken by a good probe or by stop()."""
        self._wake.clear()
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def _probe_loop(self) -> None:
        assert self._probe_interval is not None
        while True:
            await asyncio.sleep(self._probe_interval)
            if not await self.probe():
                await self._record_failure()
            elif self._state is ConnectionState.CONNECTED:
                self._consecutive_failures = 0
                await self._set_online(True)
            elif self._state is ConnectionState.BACKOFF:
                self._wake.set()

    # ── State bookkeeping ───────────────────────────────────────────

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        if state not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Illegal live client transition {self._state.value} -> {state.value}")
        self._state = state
        changed, self._state_changed = self._state_changed, asyncio.Event()
        changed.set()

    async def _set_online(self, online: bool) -> None:
        if self._online is online:
            return
        self._online = online
        logger.info("Live client is %s", "online" if online else "offline")
        try:
            await _call(self._on_status, online)
        except Exception:
            logger.exception("on_status hook failed")
