import time
from typing import Any

import anyio
import pytest

from linear_mcp.server.dispatch import DispatchRouter
from linear_mcp.server.session_registry import SessionRegistry
from linear_mcp.server.sink import PushChannel, RequestResponseSink
from linear_mcp.server.tool_registry import ToolRegistry
from linear_mcp.server.transport import SessionState, SessionTransport
from linear_mcp.types import Implementation, JSONRPCRequest, JSONRPCResultResponse, Tool


@pytest.fixture
def make_registry(tools: ToolRegistry, router: DispatchRouter):
    def factory(idle_timeout: float | None = None) -> SessionRegistry:
        def make_transport(session_id: str) -> SessionTransport:
            return SessionTransport(
                session_id,
                tools=tools,
                router=router,
                server_info=Implementation(name="test-server", version="0.1.0"),
            )

        return SessionRegistry(make_transport, idle_timeout=idle_timeout)

    return factory


def test_minted_ids_are_unique(make_registry):
    registry = make_registry()
    ids = {registry.create().id for _ in range(10_000)}
    assert len(ids) == 10_000
    assert len(registry) == 10_000


def test_new_session_starts_uninitialized(make_registry):
    session = make_registry().create()
    assert session.state is SessionState.UNINITIALIZED
    assert session.transport.session_id == session.id


def test_lookup_returns_same_instance(make_registry):
    registry = make_registry()
    session = registry.create()

    assert registry.get(session.id) is session
    assert registry.get(session.id).transport is session.transport
    assert registry.get("missing") is None


def test_remove_is_idempotent(make_registry):
    registry = make_registry()
    session = registry.create()

    registry.remove(session.id)
    registry.remove(session.id)
    registry.remove("never-existed")

    assert session.id not in registry
    assert session.state is SessionState.CLOSED


def test_closing_transport_unregisters_session(make_registry):
    registry = make_registry()
    session = registry.create()

    session.transport.close()

    assert session.id not in registry
    assert registry.get(session.id) is None


def test_close_all(make_registry):
    registry = make_registry()
    sessions = [registry.create() for _ in range(3)]

    registry.close_all()

    assert len(registry) == 0
    assert all(session.state is SessionState.CLOSED for session in sessions)


def test_sweep_is_noop_without_timeout(make_registry):
    registry = make_registry()
    session = registry.create()
    assert registry.sweep_idle(now=time.monotonic() + 10_000) == []
    assert session.id in registry


def test_sweep_evicts_only_idle_sessions(make_registry):
    registry = make_registry(idle_timeout=10)
    idle = registry.create()
    fresh = registry.create()
    streaming = registry.create()
    channel, stream = PushChannel.create()
    streaming.transport.attach(channel)

    now = time.monotonic()
    idle.last_active = now - 20
    streaming.last_active = now - 20

    with stream:
        assert registry.sweep_idle(now=now) == [idle.id]

    assert idle.id not in registry
    assert fresh.id in registry
    assert streaming.id in registry


def test_lookup_refreshes_activity(make_registry):
    registry = make_registry(idle_timeout=10)
    session = registry.create()
    session.last_active = time.monotonic() - 20

    registry.get(session.id)

    assert registry.sweep_idle() == []


@pytest.mark.anyio
async def test_sweeper_returns_when_expiry_disabled(make_registry):
    with anyio.fail_after(1):
        await make_registry().run_sweeper()


@pytest.mark.anyio
async def test_sweeper_evicts_in_background(make_registry):
    registry = make_registry(idle_timeout=0.05)
    session = registry.create()

    async with anyio.create_task_group() as tg:
        tg.start_soon(registry.run_sweeper, 0.01)
        with anyio.fail_after(2):
            while session.id in registry:
                await anyio.sleep(0.01)
        tg.cancel_scope.cancel()

    assert session.state is SessionState.CLOSED


@pytest.mark.anyio
async def test_sweep_skips_sessions_with_inflight_calls():
    started = anyio.Event()
    release = anyio.Event()

    async def slow(arguments: dict[str, Any]) -> dict[str, Any]:
        started.set()
        await release.wait()
        return {"content": []}

    tools = ToolRegistry([Tool(name="slow", input_schema={"type": "object"})])
    router = DispatchRouter(tools, {"slow": slow})
    registry = SessionRegistry(
        lambda session_id: SessionTransport(
            session_id,
            tools=tools,
            router=router,
            server_info=Implementation(name="test-server", version="0.1.0"),
        ),
        idle_timeout=10,
    )
    session = registry.create()
    init_sink = RequestResponseSink()
    await session.transport.handle(JSONRPCRequest(id=1, method="initialize", params={}), init_sink)

    sink = RequestResponseSink()
    call = JSONRPCRequest(id=2, method="tools/call", params={"name": "slow"})
    async with anyio.create_task_group() as tg:
        tg.start_soon(session.transport.handle, call, sink)
        await started.wait()

        assert registry.sweep_idle(now=time.monotonic() + 60) == []
        assert session.id in registry
        release.set()

    assert isinstance(sink.response, JSONRPCResultResponse)
    assert registry.sweep_idle(now=time.monotonic() + 60) == [session.id]
