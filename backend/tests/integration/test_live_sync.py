"""End-to-end: a write through the API reaches every live view.

Writes go through ``httpx.ASGITransport``. The change stream is served by
``httpx.MockTransport`` from a LiveChannel on the app's own bus, since
ASGITransport buffers whole responses and cannot carry an open SSE stream.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from prefuel.application.services import LiveChannel
from prefuel.client import LiveClient, RequestGateway, ViewState
from prefuel.config import Settings
from prefuel.domain.entities import ChangeEvent, EntityType
from prefuel.main import create_app


@pytest_asyncio.fixture
async def app(tmp_path: Path) -> AsyncIterator[FastAPI]:
    settings = Settings(
        _env_file=None,
        data_file=str(tmp_path / "data.json"),
        backup_dir=str(tmp_path / "backups"),
        heartbeat_interval_seconds=0.05,
    )
    application = create_app(settings)
    async with application.router.lifespan_context(application):
        yield application


def _stream_transport(app: FastAPI) -> httpx.MockTransport:
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v1/health":
            return httpx.Response(200, json={"status": "healthy"})
        channel = LiveChannel(app.state.bus, heartbeat_interval=0.05)

        async def body():
            async for frame in channel.stream():
                yield frame.encode("utf-8")

        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=body())

    return httpx.MockTransport(handler)


async def _eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


async def _gateway(app: FastAPI, email: str, password: str) -> RequestGateway:
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
    gateway = RequestGateway("http://test", http_client=http)
    await gateway.login(email, password)
    return gateway


@pytest.mark.asyncio
async def test_create_is_broadcast_to_every_view(app: FastAPI):
    writer = await _gateway(app, "staff@prefuel", "Staff@12345")
    initial = (await writer.list(EntityType.LEAD))["items"]

    views = [ViewState(EntityType.LEAD, initial) for _ in range(2)]
    stream_http = httpx.AsyncClient(transport=_stream_transport(app))
    clients = [LiveClient("http://test", view.apply, http_client=stream_http) for view in views]
    for client in clients:
        await client.start()

    try:
        await _eventually(lambda: app.state.bus.subscriber_count == 2)

        lead = await writer.create(EntityType.LEAD, {"name": "Broadcast Bhai", "source": "referral"})
        # the writer applies its own result locally; the pushed echo must not duplicate it
        views[0].apply(ChangeEvent.created("lead", lead))
        await _eventually(lambda: all(len(v.items) == len(initial) + 1 for v in views))

        for view in views:
            assert view.items[0] == lead
    finally:
        for client in clients:
            await client.stop()
        await stream_http.aclose()
        await writer.aclose()


@pytest.mark.asyncio
async def test_delete_closes_open_record_elsewhere(app: FastAPI):
    admin = await _gateway(app, "admin@prefuel", "Admin@12345")
    view = ViewState(EntityType.ITEM, (await admin.list(EntityType.ITEM))["items"])
    view.open("i3")

    stream_http = httpx.AsyncClient(transport=_stream_transport(app))
    client = LiveClient("http://test", view.apply, http_client=stream_http)
    await client.start()
    try:
        await _eventually(lambda: app.state.bus.subscriber_count == 1)
        await admin.delete(EntityType.ITEM, "i3")
        await _eventually(lambda: view.open_id is None)

        assert [n.kind for n in view.notices] == ["deleted"]
        assert "i3" not in {item["id"] for item in view.items}
    finally:
        await client.stop()
        await stream_http.aclose()
        await admin.aclose()


@pytest.mark.asyncio
async def test_receive_updates_stock_views(app: FastAPI):
    staff = await _gateway(app, "staff@prefuel", "Staff@12345")
    items_view = ViewState(EntityType.ITEM, (await staff.list(EntityType.ITEM))["items"])
    orders_view = ViewState(EntityType.PURCHASE_ORDER)

    def on_event(event):
        items_view.apply(event)
        orders_view.apply(event)

    stream_http = httpx.AsyncClient(transport=_stream_transport(app))
    client = LiveClient("http://test", on_event, http_client=stream_http)
    await client.start()
    try:
        await _eventually(lambda: app.state.bus.subscriber_count == 1)
        po = await staff.create(EntityType.PURCHASE_ORDER, {"items": [{"itemId": "i1", "qty": 5}]})
        await staff.receive(po["id"])

        await _eventually(
            lambda: bool(orders_view.items) and orders_view.items[0]["status"] == "received"
        )
        stock = next(i["stock"] for i in items_view.items if i["id"] == "i1")
        assert stock == 45
    finally:
        await client.stop()
        await stream_http.aclose()
        await staff.aclose()


@pytest.mark.asyncio
async def test_queued_offline_write_reaches_live_views_after_reconnect(app: FastAPI):
    staff = await _gateway(app, "staff@prefuel", "Staff@12345")
    view = ViewState(EntityType.TASK)

    stream_http = httpx.AsyncClient(transport=_stream_transport(app))
    client = LiveClient("http://test", view.apply, http_client=stream_http, on_status=staff.set_online)
    await client.start()
    try:
        await _eventually(lambda: app.state.bus.subscriber_count == 1)
        await staff.set_online(False)
        receipt = await staff.create(EntityType.TASK, {"title": "Written on the train"})
        assert receipt.status == "queued"
        assert view.items == []

        await staff.set_online(True)
        await _eventually(lambda: len(view.items) == 1)
        assert view.items[0]["title"] == "Written on the train"
    finally:
        await client.stop()
        await stream_http.aclose()
        await staff.aclose()


@pytest.mark.asyncio
async def test_back_to_back_writes_arrive_in_commit_order(app: FastAPI):
    received: list[ChangeEvent] = []
    stream_http = httpx.AsyncClient(transport=_stream_transport(app))
    client = LiveClient("http://test", received.append, http_client=stream_http)
    await client.start()
    try:
        await _eventually(lambda: app.state.bus.subscriber_count == 1)

        store = app.state.store
        expected: list[tuple[str, str]] = []
        for n in range(20):
            task = store.create(EntityType.TASK, {"title": f"Step {n}"})
            expected.append(("create", task["id"]))
            if n % 3 == 0:
                store.update(EntityType.TASK, task["id"], {"status": "done"})
                expected.append(("update", task["id"]))
            if n % 5 == 0:
                store.delete(EntityType.TASK, task["id"])
                expected.append(("delete", task["id"]))

        await _eventually(lambda: len(received) == len(expected))
        assert [(e.type.value, e.id) for e in received] == expected
    finally:
        await client.stop()
        await stream_http.aclose()
