import json
from typing import Any
from unittest.mock import AsyncMock

import anyio
import httpx
import pytest
from starlette.applications import Starlette

from linear_mcp.server.gateway import MCP_SESSION_ID_HEADER, create_app
from linear_mcp.server.session_registry import SessionRegistry
from linear_mcp.server.tool_registry import ToolRegistry
from linear_mcp.server.transport import SessionState
from linear_mcp.types import Implementation, Tool

pytestmark = pytest.mark.anyio

INIT_REQUEST = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-06-18",
        "capabilities": {},
        "clientInfo": {"name": "test-client", "version": "1.0"},
    },
}


@pytest.fixture
def app(tools: ToolRegistry, handlers: dict[str, AsyncMock]) -> Starlette:
    return create_app(tools, handlers, server_info=Implementation(name="test-server", version="0.1.0"))


@pytest.fixture
def registry(app: Starlette) -> SessionRegistry:
    return app.state.gateway.registry


@pytest.fixture
async def client(app: Starlette):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client


async def _initialize(client: httpx.AsyncClient) -> str:
    response = await client.post("/mcp", json=INIT_REQUEST)
    assert response.status_code == 200
    return response.headers[MCP_SESSION_ID_HEADER]


def _events(body: str) -> list[dict[str, Any]]:
    return [json.loads(line[len("data: ") :]) for line in body.splitlines() if line.startswith("data: ")]


async def test_health(client: httpx.AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "linear-mcp"}


async def test_initialize_without_session_creates_one(client: httpx.AsyncClient, registry: SessionRegistry):
    response = await client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})

    assert response.status_code == 200
    session_id = response.headers[MCP_SESSION_ID_HEADER]
    assert session_id in registry
    assert registry.get(session_id).state is SessionState.ACTIVE

    body = response.json()
    assert body["jsonrpc"] == "2.0"
    assert body["id"] == 1
    assert body["result"]["serverInfo"]["name"] == "test-server"


@pytest.mark.parametrize("tool_name", ["nonexistent_tool", "does_not_exist"])
async def test_unknown_tool_error(client: httpx.AsyncClient, registry: SessionRegistry, tool_name: str):
    session_id = await _initialize(client)

    response = await client.post(
        "/mcp",
        json={
            "jsonrpc": "2.0",
            "id": 2,
            "method": "tools/call",
            "params": {"name": tool_name, "arguments": {}},
        },
        headers={MCP_SESSION_ID_HEADER: session_id},
    )

    assert response.status_code == 200
    assert response.json() == {
        "jsonrpc": "2.0",
        "id": 2,
        "error": {"code": -32601, "message": f"Unknown tool: {tool_name}"},
    }
    assert registry.get(session_id).state is SessionState.ACTIVE


async def test_request_without_session_is_rejected(client: httpx.AsyncClient, registry: SessionRegistry):
    response = await client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

    assert response.status_code == 400
    assert response.json() == {
        "jsonrpc": "2.0",
        "id": None,
        "error": {"code": -32000, "message": "Bad Request: No valid session ID provided"},
    }
    assert MCP_SESSION_ID_HEADER not in response.headers
    assert len(registry) == 0


async def test_initialize_with_unknown_session_is_rejected(client: httpx.AsyncClient, registry: SessionRegistry):
    response = await client.post("/mcp", json=INIT_REQUEST, headers={MCP_SESSION_ID_HEADER: "does-not-exist"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32000
    assert len(registry) == 0


@pytest.mark.parametrize("request_id", [7, "abc-123"])
async def test_response_echoes_request_id(client: httpx.AsyncClient, request_id: int | str):
    session_id = await _initialize(client)
    response = await client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": request_id, "method": "ping"},
        headers={MCP_SESSION_ID_HEADER: session_id},
    )
    assert response.json() == {"jsonrpc": "2.0", "id": request_id, "result": {}}


async def test_tools_list_is_stable(client: httpx.AsyncClient):
    session_id = await _initialize(client)
    listings = []
    for request_id in (2, 3):
        response = await client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": request_id, "method": "tools/list"},
            headers={MCP_SESSION_ID_HEADER: session_id},
        )
        assert response.status_code == 200
        listings.append(response.json()["result"]["tools"])

    assert listings[0] == listings[1]
    assert [tool["name"] for tool in listings[0]] == ["echo", "explode"]


async def test_tool_call_round_trip(client: httpx.AsyncClient, handlers: dict[str, AsyncMock]):
    session_id = await _initialize(client)
    response = await client.post(
        "/mcp",
        json={
            "jsonrpc": "2.0",
            "id": 4,
            "method": "tools/call",
            "params": {"name": "echo", "arguments": {"message": "hey"}},
        },
        headers={MCP_SESSION_ID_HEADER: session_id},
    )

    assert response.status_code == 200
    assert response.headers[MCP_SESSION_ID_HEADER] == session_id
    assert response.json()["result"]["content"] == [{"type": "text", "text": "hey"}]
    handlers["echo"].assert_awaited_once_with({"message": "hey"})


async def test_concurrent_sessions_are_isolated(client: httpx.AsyncClient, registry: SessionRegistry):
    first = await _initialize(client)
    second = await _initialize(client)
    assert first != second

    await client.delete("/mcp", headers={MCP_SESSION_ID_HEADER: first})

    response = await client.post(
        "/mcp", json={"jsonrpc": "2.0", "id": 2, "method": "ping"}, headers={MCP_SESSION_ID_HEADER: second}
    )
    assert response.status_code == 200
    assert first not in registry
    assert second in registry


async def test_notification_is_accepted(client: httpx.AsyncClient):
    session_id = await _initialize(client)
    response = await client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "method": "notifications/initialized"},
        headers={MCP_SESSION_ID_HEADER: session_id},
    )
    assert response.status_code == 202
    assert response.content == b""


async def test_parse_error(client: httpx.AsyncClient):
    response = await client.post("/mcp", content=b"{not json", headers={"content-type": "application/json"})

    assert response.status_code == 400
    body = response.json()
    assert body["id"] is None
    assert body["error"]["code"] == -32700


async def test_invalid_message(client: httpx.AsyncClient):
    response = await client.post("/mcp", json={"hello": "world"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32600


async def test_failed_initialize_does_not_leak_session(client: httpx.AsyncClient, registry: SessionRegistry):
    response = await client.post(
        "/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"clientInfo": "nope"}}
    )

    assert response.status_code == 200
    assert response.json()["error"]["code"] == -32600
    assert MCP_SESSION_ID_HEADER not in response.headers
    assert len(registry) == 0


async def test_deleted_session_is_stale(client: httpx.AsyncClient, registry: SessionRegistry):
    session_id = await _initialize(client)

    response = await client.delete("/mcp", headers={MCP_SESSION_ID_HEADER: session_id})
    assert response.status_code == 200
    assert session_id not in registry

    response = await client.post(
        "/mcp", json={"jsonrpc": "2.0", "id": 2, "method": "tools/list"}, headers={MCP_SESSION_ID_HEADER: session_id}
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32000


async def test_delete_errors(client: httpx.AsyncClient):
    missing = await client.delete("/mcp")
    unknown = await client.delete("/mcp", headers={MCP_SESSION_ID_HEADER: "does-not-exist"})

    assert missing.status_code == 400
    assert unknown.status_code == 404


async def test_unsupported_method(client: httpx.AsyncClient):
    response = await client.put("/mcp", json=INIT_REQUEST)
    assert response.status_code == 405


async def test_get_without_session_attaches_nothing(client: httpx.AsyncClient, registry: SessionRegistry):
    session_id = await _initialize(client)

    missing = await client.get("/mcp")
    unknown = await client.get("/mcp", headers={MCP_SESSION_ID_HEADER: "not-a-real-id"})

    for response in (missing, unknown):
        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Invalid or missing session ID"
    assert not registry.get(session_id).transport.has_push_channel


async def test_event_stream_delivers_push_messages(client: httpx.AsyncClient, registry: SessionRegistry):
    session_id = await _initialize(client)
    transport = registry.get(session_id).transport
    responses: list[httpx.Response] = []
    conflicts: list[httpx.Response] = []

    async def open_stream() -> None:
        responses.append(await client.get("/mcp", headers={MCP_SESSION_ID_HEADER: session_id}))

    async with anyio.create_task_group() as tg:
        tg.start_soon(open_stream)
        with anyio.fail_after(5):
            while not transport.has_push_channel:
                await anyio.sleep(0.01)

        conflicts.append(await client.get("/mcp", headers={MCP_SESSION_ID_HEADER: session_id}))
        assert await transport.send_notification("notifications/message", {"level": "info", "data": "hello"})
        await client.delete("/mcp", headers={MCP_SESSION_ID_HEADER: session_id})

    assert conflicts[0].status_code == 409
    response = responses[0]
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers[MCP_SESSION_ID_HEADER] == session_id
    assert _events(response.text) == [
        {"jsonrpc": "2.0", "method": "notifications/message", "params": {"level": "info", "data": "hello"}}
    ]
    assert session_id not in registry


async def test_unexpected_failure_returns_internal_error(
    client: httpx.AsyncClient, registry: SessionRegistry, monkeypatch: pytest.MonkeyPatch
):
    def broken_create():
        raise RuntimeError("registry unavailable")

    monkeypatch.setattr(registry, "create", broken_create)

    response = await client.post("/mcp", json=INIT_REQUEST)

    assert response.status_code == 500
    assert response.json() == {
        "jsonrpc": "2.0",
        "id": None,
        "error": {"code": -32603, "message": "Internal server error"},
    }


class Gate:
    """Tool handler that blocks until released."""

    def __init__(self) -> None:
        self.started = anyio.Event()
        self.release = anyio.Event()
        self.finished = False

    async def __call__(self, arguments: dict[str, Any]) -> dict[str, Any]:
        self.started.set()
        await self.release.wait()
        self.finished = True
        return {"content": [{"type": "text", "text": "done"}]}


def _gated_app(gate: Gate) -> Starlette:
    tools = ToolRegistry([Tool(name="slow", input_schema={"type": "object"})])
    return create_app(tools, {"slow": gate}, server_info=Implementation(name="test-server", version="0.1.0"))


def _slow_call(request_id: int) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "method": "tools/call", "params": {"name": "slow"}}


async def test_session_deleted_mid_call_answers_stale():
    gate = Gate()
    app = _gated_app(gate)
    registry: SessionRegistry = app.state.gateway.registry
    responses: list[httpx.Response] = []

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        session_id = await _initialize(client)
        headers = {MCP_SESSION_ID_HEADER: session_id}

        async def call() -> None:
            responses.append(await client.post("/mcp", json=_slow_call(5), headers=headers))

        async with anyio.create_task_group() as tg:
            tg.start_soon(call)
            with anyio.fail_after(5):
                await gate.started.wait()
            deleted = await client.delete("/mcp", headers=headers)
            assert deleted.status_code == 200
            gate.release.set()

    response = responses[0]
    assert response.status_code == 400
    assert response.json() == {
        "jsonrpc": "2.0",
        "id": 5,
        "error": {"code": -32000, "message": f"Stale session: {session_id}"},
    }
    assert MCP_SESSION_ID_HEADER not in response.headers
    assert gate.finished
    assert session_id not in registry


async def test_client_disconnect_mid_call_closes_session():
    gate = Gate()
    app = _gated_app(gate)
    registry: SessionRegistry = app.state.gateway.registry
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        session_id = await _initialize(client)

    pending: list[dict[str, Any]] = [
        {"type": "http.request", "body": json.dumps(_slow_call(6)).encode(), "more_body": False}
    ]
    disconnected = anyio.Event()
    sent: list[dict[str, Any]] = []

    async def receive() -> dict[str, Any]:
        if pending:
            return pending.pop(0)
        await disconnected.wait()
        return {"type": "http.disconnect"}

    async def send(message: dict[str, Any]) -> None:
        sent.append(message)

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/mcp",
        "raw_path": b"/mcp",
        "root_path": "",
        "query_string": b"",
        "headers": [
            (b"content-type", b"application/json"),
            (MCP_SESSION_ID_HEADER.encode(), session_id.encode()),
        ],
        "client": ("127.0.0.1", 50000),
        "server": ("test", 80),
    }

    async with anyio.create_task_group() as tg:
        tg.start_soon(app, scope, receive, send)
        with anyio.fail_after(5):
            await gate.started.wait()
            disconnected.set()
            while session_id in registry:
                await anyio.sleep(0.01)
        gate.release.set()

    assert gate.finished
    assert sent == []


async def test_null_request_id_is_rejected(client: httpx.AsyncClient):
    session_id = await _initialize(client)
    response = await client.post(
        "/mcp", json={"jsonrpc": "2.0", "id": None, "method": "ping"}, headers={MCP_SESSION_ID_HEADER: session_id}
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32600
