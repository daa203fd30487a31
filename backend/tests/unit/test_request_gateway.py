"""Unit tests for the RequestGateway: error mapping and the offline write queue."""

import json

import httpx
import pytest

from prefuel.client import (
    ApiError,
    AuthenticationError,
    ConflictError,
    EntityNotFoundError,
    ForbiddenError,
    QueuedWrite,
    RequestGateway,
    TransportError,
    ValidationFailedError,
)
from prefuel.domain.entities import EntityType


class FakeApi:
    """Records requests and answers from a scripted list (default: 201 echo)."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.script: list[httpx.Response | Exception] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.script:
            outcome = self.script.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        body = json.loads(request.content) if request.content else {}
        return httpx.Response(201, json={"id": "x1", **body})

    @property
    def paths(self) -> list[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def gateway(api: FakeApi) -> RequestGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(api.handler))
    return RequestGateway("http://test", http_client=client, token="tok")


# ── Requests ──


@pytest.mark.asyncio
async def test_attaches_bearer_token_and_builds_paths(api: FakeApi, gateway: RequestGateway):
    await gateway.create(EntityType.PURCHASE_ORDER, {"supplier": "SunSupply"})
    await gateway.receive("po1")

    assert api.paths == ["POST /api/v1/purchase-orders", "POST /api/v1/purchase-orders/po1/receive"]
    assert api.requests[0].headers["Authorization"] == "Bearer tok"


@pytest.mark.asyncio
async def test_list_sends_filters_and_paging(api: FakeApi, gateway: RequestGateway):
    api.script.append(httpx.Response(200, json={"items": [], "total": 0}))
    result = await gateway.list("leads", {"status": "new"}, page=2, size=10)

    assert result == {"items": [], "total": 0}
    params = api.requests[0].url.params
    assert (params["status"], params["page"], params["size"]) == ("new", "2", "10")


@pytest.mark.asyncio
async def test_login_stores_token(api: FakeApi, gateway: RequestGateway):
    api.script.append(httpx.Response(200, json={"token": "fresh", "user": {"id": "u1"}}))
    user = await gateway.login("admin@prefuel", "pw")

    assert user == {"id": "u1"}
    assert gateway.token == "fresh"


# ── Error mapping ──


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, error_cls",
    [
        (400, ValidationFailedError),
        (401, AuthenticationError),
        (403, ForbiddenError),
        (404, EntityNotFoundError),
        (409, ConflictError),
        (422, ValidationFailedError),
        (500, ApiError),
    ],
)
async def test_status_codes_map_to_errors(api: FakeApi, gateway: RequestGateway, status, error_cls):
    api.script.append(httpx.Response(status, json={"detail": "nope", "kind": "whatever"}))

    with pytest.raises(error_cls) as exc_info:
        await gateway.get(EntityType.LEAD, "l1")

    assert exc_info.value.status_code == status
    assert exc_info.value.detail == "nope"


@pytest.mark.asyncio
async def test_validation_error_exposes_field_errors(api: FakeApi, gateway: RequestGateway):
    api.script.append(
        httpx.Response(
            422,
            json={"detail": "Invalid item data: sku", "kind": "validation",
                  "errors": [{"field": "sku", "message": "Field required"}]},
        )
    )
    with pytest.raises(ValidationFailedError) as exc_info:
        await gateway.create(EntityType.ITEM, {"name": "Cable"})
    assert exc_info.value.errors == [{"field": "sku", "message": "Field required"}]


@pytest.mark.asyncio
async def test_transport_failure_raises_transport_error(api: FakeApi, gateway: RequestGateway):
    api.script.append(httpx.ConnectError("down"))
    with pytest.raises(TransportError):
        await gateway.get(EntityType.LEAD, "l1")


@pytest.mark.asyncio
async def test_health_is_false_when_unreachable(api: FakeApi, gateway: RequestGateway):
    api.script.append(httpx.ConnectError("down"))
    assert await gateway.health() is False


# ── Offline queue ──


@pytest.mark.asyncio
async def test_offline_writes_are_queued_and_replayed_in_order(api: FakeApi, gateway: RequestGateway):
    await gateway.set_online(False)

    first = await gateway.create(EntityType.TASK, {"title": "one"})
    second = await gateway.update(EntityType.TASK, "t1", {"title": "two"})
    third = await gateway.delete(EntityType.TASK, "t1")

    assert all(isinstance(r, QueuedWrite) and r.status == "queued" for r in (first, second, third))
    assert api.requests == []

    replayed = await gateway.set_online(True)

    assert replayed == 3
    assert api.paths == ["POST /api/v1/tasks", "PUT /api/v1/tasks/t1", "DELETE /api/v1/tasks/t1"]
    assert gateway.pending == []

    # a second transition does not resend anything
    await gateway.set_online(False)
    await gateway.set_online(True)
    assert len(api.requests) == 3


@pytest.mark.asyncio
async def test_refused_replay_is_reported_and_replay_continues(api: FakeApi):
    failures: list[tuple[QueuedWrite, ApiError]] = []
    client = httpx.AsyncClient(transport=httpx.MockTransport(api.handler))
    gateway = RequestGateway("http://test", http_client=client, on_delayed_failure=lambda w, e: failures.append((w, e)))

    await gateway.set_online(False)
    bad = await gateway.create(EntityType.ITEM, {"name": "Dup", "sku": "SP-500"})
    await gateway.create(EntityType.TASK, {"title": "fine"})

    api.script.append(httpx.Response(409, json={"detail": "duplicate", "kind": "conflict"}))
    await gateway.set_online(True)

    assert [(w.id, type(e)) for w, e in failures] == [(bad.id, ConflictError)]
    assert api.paths == ["POST /api/v1/items", "POST /api/v1/tasks"]
    assert gateway.pending == []


@pytest.mark.asyncio
async def test_transport_failure_pauses_replay(api: FakeApi, gateway: RequestGateway):
    await gateway.set_online(False)
    await gateway.create(EntityType.TASK, {"title": "one"})
    await gateway.create(EntityType.TASK, {"title": "two"})

    api.script.append(httpx.ConnectError("still down"))
    assert await gateway.set_online(True) == 0
    assert [w.body["title"] for w in gateway.pending] == ["one", "two"]

    # new writes line up behind the stuck queue
    queued = await gateway.create(EntityType.TASK, {"title": "three"})
    assert isinstance(queued, QueuedWrite)

    assert await gateway.replay() == 3
    sent = [json.loads(r.content)["title"] for r in api.requests[1:]]
    assert sent == ["one", "two", "three"]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 500, 503])
async def test_retryable_status_keeps_write_queued(api: FakeApi, status):
    failures: list[tuple[QueuedWrite, ApiError]] = []
    client = httpx.AsyncClient(transport=httpx.MockTransport(api.handler))
    gateway = RequestGateway("http://test", http_client=client, on_delayed_failure=lambda w, e: failures.append((w, e)))

    await gateway.set_online(False)
    await gateway.create(EntityType.TASK, {"title": "one"})
    await gateway.create(EntityType.TASK, {"title": "two"})

    api.script.append(httpx.Response(status, json={"detail": "not now", "kind": "error"}))
    assert await gateway.set_online(True) == 0
    assert [w.body["title"] for w in gateway.pending] == ["one", "two"]
    assert failures == []

    assert await gateway.replay() == 2
    assert gateway.pending == []
    sent = [json.loads(r.content)["title"] for r in api.requests[1:]]
    assert sent == ["one", "two"]
