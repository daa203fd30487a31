"""Unit tests for the LiveClient reconnect loop, driven by an in-process stream."""

import asyncio
from collections.abc import Callable

import httpx
import pytest

from prefuel.application.services import ChangeBus, LiveChannel
from prefuel.client import ConnectionState, ExponentialBackoff, LiveClient
from prefuel.domain.entities import ChangeEvent


class FakeStreamServer:
    """Serves /api/v1/stream from a real LiveChannel over httpx.MockTransport."""

    def __init__(self) -> None:
        self.bus = ChangeBus()
        self.fail_next = 0
        self.healthy = True
        self.health_script: list[int] = []
        self.health_calls = 0
        self.crash_next = 0
        self.connections = 0
        self.raw_body: bytes | None = None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v1/health":
            self.health_calls += 1
            status = self.health_script.pop(0) if self.health_script else (200 if self.healthy else 503)
            return httpx.Response(status, json={"status": "healthy"})
        if self.fail_next:
            self.fail_next -= 1
            raise httpx.ConnectError("connection refused", request=request)

        self.connections += 1
        headers = {"content-type": "text/event-stream"}
        if self.raw_body is not None:
            return httpx.Response(200, headers=headers, content=self.raw_body)

        if self.crash_next:
            self.crash_next -= 1

            async def broken():
                yield b"event: ready\ndata: {}\n\n"
                raise httpx.StreamClosed()

            return httpx.Response(200, headers=headers, content=broken())

        channel = LiveChannel(self.bus, heartbeat_interval=0.02)

        async def body():
            async for frame in channel.stream():
                yield frame.encode("utf-8")

        return httpx.Response(200, headers=headers, content=body())


async def _eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def server() -> FakeStreamServer:
    return FakeStreamServer()


@pytest.fixture
def http_client(server: FakeStreamServer) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(server.handler))


def _client(http_client: httpx.AsyncClient, received: list, **kwargs) -> LiveClient:
    kwargs.setdefault("backoff", ExponentialBackoff(floor=0.01, cap=0.05))
    return LiveClient("http://test", received.append, http_client=http_client, **kwargs)


# ── Backoff ──


def test_backoff_doubles_up_to_cap_and_resets():
    backoff = ExponentialBackoff(floor=1, cap=30)
    assert [backoff.next_delay() for _ in range(7)] == [1, 2, 4, 8, 16, 30, 30]
    backoff.reset()
    assert backoff.next_delay() == 1


def test_backoff_rejects_nonsense_bounds():
    with pytest.raises(ValueError):
        ExponentialBackoff(floor=5, cap=1)


# ── Streaming ──


@pytest.mark.asyncio
async def test_delivers_events_in_order(server: FakeStreamServer, http_client: httpx.AsyncClient):
    received: list[ChangeEvent] = []
    client = _client(http_client, received)
    await client.start()
    try:
        await client.wait_for_state(ConnectionState.CONNECTED, timeout=2)
        await _eventually(lambda: server.bus.subscriber_count == 1)

        for n in range(3):
            server.bus.publish(ChangeEvent.created("task", {"id": f"t{n}"}))
        await _eventually(lambda: len(received) == 3)

        # heartbeats keep flowing, but nothing else is delivered
        await asyncio.sleep(0.06)
        assert [e.id for e in received] == ["t0", "t1", "t2"]
        assert client.online is True
    finally:
        await client.stop()
        await http_client.aclose()


@pytest.mark.asyncio
async def test_async_callback_is_awaited(server: FakeStreamServer, http_client: httpx.AsyncClient):
    seen: list[str] = []

    async def on_event(event: ChangeEvent) -> None:
        await asyncio.sleep(0)
        seen.append(event.id)

    client = LiveClient("http://test", on_event, http_client=http_client)
    await client.start()
    try:
        await _eventually(lambda: server.bus.subscriber_count == 1)
        server.bus.publish(ChangeEvent.deleted("lead", "l1"))
        await _eventually(lambda: seen == ["l1"])
    finally:
        await client.stop()
        await http_client.aclose()


@pytest.mark.asyncio
async def test_malformed_frames_are_skipped(server: FakeStreamServer, http_client: httpx.AsyncClient):
    server.raw_body = (
        b"event: ready\ndata: {}\n\n"
        b"data: not json\n\n"
        b'data: {"type": "explode", "entity": "lead"}\n\n'
        b'data: {"type": "delete", "entity": "lead", "id": "l1"}\n\n'
    )
    received: list[ChangeEvent] = []
    client = _client(http_client, received, backoff=ExponentialBackoff(floor=5, cap=5))
    await client.start()
    try:
        await client.wait_for_state(ConnectionState.BACKOFF, timeout=2)
        assert [(e.type.value, e.id) for e in received] == [("delete", "l1")]
    finally:
        await client.stop()
        await http_client.aclose()


# ── Reconnect and status ──


@pytest.mark.asyncio
async def test_reports_offline_after_two_failures_then_recovers(
    server: FakeStreamServer, http_client: httpx.AsyncClient
):
    server.fail_next = 2
    statuses: list[bool] = []
    client = _client(http_client, [], on_status=statuses.append)
    await client.start()
    try:
        await client.wait_for_state(ConnectionState.CONNECTED, timeout=2)
        assert statuses == [False, True]
        assert client.consecutive_failures == 0
    finally:
        await client.stop()
        await http_client.aclose()


@pytest.mark.asyncio
async def test_single_failure_keeps_online_status(server: FakeStreamServer, http_client: httpx.AsyncClient):
    server.fail_next = 1
    statuses: list[bool] = []
    client = _client(http_client, [], on_status=statuses.append)
    await client.start()
    try:
        await client.wait_for_state(ConnectionState.CONNECTED, timeout=2)
        assert statuses == [True]
    finally:
        await client.stop()
        await http_client.aclose()


@pytest.mark.asyncio
async def test_offline_host_network_reports_offline_at_once(
    server: FakeStreamServer, http_client: httpx.AsyncClient
):
    server.fail_next = 100
    statuses: list[bool] = []
    client = _client(
        http_client,
        [],
        on_status=statuses.append,
        network_online=lambda: False,
        backoff=ExponentialBackoff(floor=5, cap=5),
    )
    await client.start()
    try:
        await client.wait_for_state(ConnectionState.BACKOFF, timeout=2)
        assert statuses == [False]
        assert client.consecutive_failures == 1
    finally:
        await client.stop()
        await http_client.aclose()


@pytest.mark.asyncio
async def test_server_close_reconnects_and_runs_on_connect(
    server: FakeStreamServer, http_client: httpx.AsyncClient
):
    connects: list[int] = []
    client = _client(http_client, [], on_connect=lambda: connects.append(server.connections))
    await client.start()
    try:
        await _eventually(lambda: server.bus.subscriber_count == 1)
        server.bus.shutdown()
        await _eventually(lambda: len(connects) == 2)
        assert connects == [1, 2]
        assert client.state is ConnectionState.CONNECTED
    finally:
        await client.stop()
        await http_client.aclose()


@pytest.mark.asyncio
async def test_single_failed_health_check_keeps_online_status(
    server: FakeStreamServer, http_client: httpx.AsyncClient
):
    statuses: list[bool] = []
    client = _client(http_client, [], on_status=statuses.append, probe_interval=0.01)
    await client.start()
    try:
        await client.wait_for_state(ConnectionState.CONNECTED, timeout=2)
        calls = server.health_calls
        server.health_script = [503]
        await _eventually(lambda: server.health_calls >= calls + 4)

        assert statuses == [True]
        assert client.online is True
        assert client.consecutive_failures == 0
    finally:
        await client.stop()
        await http_client.aclose()


@pytest.mark.asyncio
async def test_failed_health_checks_go_offline_and_recover(
    server: FakeStreamServer, http_client: httpx.AsyncClient
):
    statuses: list[bool] = []
    client = _client(http_client, [], on_status=statuses.append, probe_interval=0.01)
    await client.start()
    try:
        await client.wait_for_state(ConnectionState.CONNECTED, timeout=2)
        server.health_script = [503, 503]
        await _eventually(lambda: statuses == [True, False, True])

        assert client.state is ConnectionState.CONNECTED
        assert client.online is True
    finally:
        await client.stop()
        await http_client.aclose()


@pytest.mark.asyncio
async def test_healthy_check_cuts_backoff_short(server: FakeStreamServer, http_client: httpx.AsyncClient):
    server.fail_next = 1
    client = _client(http_client, [], backoff=ExponentialBackoff(floor=30, cap=30), probe_interval=0.01)
    await client.start()
    try:
        await client.wait_for_state(ConnectionState.CONNECTED, timeout=2)
    finally:
        await client.stop()
        await http_client.aclose()


# ── Stop ──


@pytest.mark.asyncio
async def test_stop_during_backoff_is_prompt_and_terminal(
    server: FakeStreamServer, http_client: httpx.AsyncClient
):
    server.fail_next = 100
    client = _client(http_client, [], backoff=ExponentialBackoff(floor=30, cap=30))
    await client.start()
    await client.wait_for_state(ConnectionState.BACKOFF, timeout=2)

    await asyncio.wait_for(client.stop(), timeout=1)

    assert client.state is ConnectionState.STOPPED
    with pytest.raises(RuntimeError):
        await client.start()
    await client.stop()
    await http_client.aclose()


@pytest.mark.asyncio
async def test_stop_closes_owned_http_client():
    client = LiveClient("http://test.invalid", lambda event: None)
    await client.start()
    owned = client._http_client

    await client.stop()

    assert owned is not None and owned.is_closed


@pytest.mark.asyncio
async def test_stream_error_mid_read_backs_off_and_reconnects(
    server: FakeStreamServer, http_client: httpx.AsyncClient
):
    server.crash_next = 1
    connects: list[int] = []
    client = _client(http_client, [], on_connect=lambda: connects.append(server.connections))
    await client.start()
    try:
        await _eventually(lambda: connects == [1, 2])
        await _eventually(lambda: server.bus.subscriber_count == 1)
        assert client.state is ConnectionState.CONNECTED
    finally:
        await client.stop()
        await http_client.aclose()
