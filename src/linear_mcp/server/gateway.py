"""HTTP surface: classifies requests and routes them to sessions.

Routes:
  GET    /health  liveness probe
  POST   /mcp     one JSON-RPC message (initialize, or addressed to a session)
  GET    /mcp     attach the session's push channel as an event stream
  DELETE /mcp     terminate a session
"""

from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import AbstractAsyncContextManager
from http import HTTPStatus
from typing import Any

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream
from pydantic import ValidationError
from sse_starlette import EventSourceResponse
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route
from starlette.types import Message, Receive, Scope, Send

from linear_mcp.server.dispatch import DispatchRouter, ToolHandler
from linear_mcp.server.session_registry import Session, SessionRegistry
from linear_mcp.server.sink import PushChannel, RequestResponseSink
from linear_mcp.server.tool_registry import ToolRegistry
from linear_mcp.server.transport import SessionState, SessionTransport
from linear_mcp.types import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    INVALID_SESSION,
    PARSE_ERROR,
    ErrorData,
    Implementation,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
    JSONRPCRequest,
    dump_message,
)

logger = logging.getLogger(__name__)

MCP_SESSION_ID_HEADER = "mcp-session-id"
SERVICE_NAME = "linear-mcp"
DEFAULT_SERVER_INFO = Implementation(name="linear-server", version="0.1.0")

Lifespan = Callable[[Starlette], AbstractAsyncContextManager[None]]


def _error_response(code: int, message: str, status_code: int, headers: Mapping[str, str] | None = None) -> Response:
    body = dump_message(JSONRPCErrorResponse(id=None, error=ErrorData(code=code, message=message)))
    return JSONResponse(body, status_code=status_code, headers=headers)


def _is_initialize(message: JSONRPCMessage) -> bool:
    return isinstance(message, JSONRPCRequest) and message.method == "initialize"


class ProtocolGateway:
    """Demultiplexes HTTP requests by session and message kind.

    The gateway never interprets tool semantics; it only decides which session
    (if any) a request belongs to and hands the message to that session's
    transport.
    """

    def __init__(self, registry: SessionRegistry, *, ping_interval: int = 15):
        self.registry = registry
        self._ping_interval = ping_interval

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        request = Request(scope, receive)
        try:
            match request.method:
                case "POST":
                    await self._handle_post(request, send_wrapper)
                case "GET":
                    await self._handle_get(request, send_wrapper)
                case "DELETE":
                    await self._handle_delete(request, send_wrapper)
                case _:
                    response = PlainTextResponse(
                        "Method Not Allowed",
                        status_code=HTTPStatus.METHOD_NOT_ALLOWED,
                        headers={"Allow": "GET, POST, DELETE"},
                    )
                    await response(scope, receive, send_wrapper)
        except Exception:
            logger.exception("Error handling MCP request")
            if not response_started:
                response = _error_response(INTERNAL_ERROR, "Internal server error", HTTPStatus.INTERNAL_SERVER_ERROR)
                await response(scope, receive, send)

    async def _handle_post(self, request: Request, send: Send) -> None:
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        response = await self._process_post(request, session_id)
        if response is not None:
            await response(request.scope, request.receive, send)

    async def _process_post(self, request: Request, session_id: str | None) -> Response | None:
        """Build the reply to one POST, or None when the client has already gone."""
        body = await request.body()
        try:
            raw = json.loads(body)
        except ValueError as e:
            return _error_response(PARSE_ERROR, f"Parse error: {e}", HTTPStatus.BAD_REQUEST)
        try:
            message = JSONRPCMessageAdapter.validate_python(raw)
        except ValidationError:
            return _error_response(
                INVALID_REQUEST, "Invalid Request: not a JSON-RPC 2.0 message", HTTPStatus.BAD_REQUEST
            )

        session: Session | None = None
        if session_id is not None:
            session = self.registry.get(session_id)
        elif _is_initialize(message):
            session = self.registry.create()

        if session is None:
            return _error_response(
                INVALID_SESSION, "Bad Request: No valid session ID provided", HTTPStatus.BAD_REQUEST
            )

        sink = RequestResponseSink()
        if not await self._deliver(request, session, message, sink):
            return None
        session.touch()

        headers = {MCP_SESSION_ID_HEADER: session.id}
        if session_id is None and session.state is not SessionState.ACTIVE:
            # The handshake failed, so the id was never handed out.
            self.registry.remove(session.id)
            headers = {}

        reply = sink.response
        if reply is None:
            return Response(status_code=HTTPStatus.ACCEPTED, headers=headers)
        status = HTTPStatus.OK
        if isinstance(reply, JSONRPCErrorResponse) and reply.error.code == INVALID_SESSION:
            status = HTTPStatus.BAD_REQUEST
            headers = {}
        return JSONResponse(dump_message(reply), status_code=status, headers=headers)

    async def _deliver(
        self, request: Request, session: Session, message: JSONRPCMessage, sink: RequestResponseSink
    ) -> bool:
        """Hand ``message`` to the session. Returns False if the client disconnected meanwhile."""
        async with anyio.create_task_group() as tg:
            tg.start_soon(self._close_on_disconnect, request, session.id, sink)
            await session.transport.handle(message, sink)
            tg.cancel_scope.cancel()
        return not (sink.closed and sink.response is None)

    async def _close_on_disconnect(self, request: Request, session_id: str, sink: RequestResponseSink) -> None:
        while True:
            message = await request.receive()
            if message["type"] == "http.disconnect":
                logger.info("Client disconnected from session %s before the response was sent", session_id)
                sink.close()
                self.registry.remove(session_id)
                return

    async def _handle_get(self, request: Request, send: Send) -> None:
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        session = self.registry.get(session_id) if session_id else None
        if session is None:
            response = PlainTextResponse("Invalid or missing session ID", status_code=HTTPStatus.BAD_REQUEST)
            await response(request.scope, request.receive, send)
            return
        if session.transport.has_push_channel:
            response = PlainTextResponse(
                "Conflict: Only one event stream is allowed per session", status_code=HTTPStatus.CONFLICT
            )
            await response(request.scope, request.receive, send)
            return

        channel, stream = PushChannel.create()
        session.transport.attach(channel)
        logger.info("Event stream attached to session %s", session.id)
        response = EventSourceResponse(
            self._event_stream(stream),
            headers={MCP_SESSION_ID_HEADER: session.id, "Cache-Control": "no-cache, no-transform"},
            ping=self._ping_interval,
        )
        try:
            await response(request.scope, request.receive, send)
        finally:
            logger.info("Event stream for session %s ended", session.id)
            channel.close()
            self.registry.remove(session.id)

    async def _event_stream(self, stream: MemoryObjectReceiveStream[JSONRPCMessage]) -> AsyncIterator[dict[str, Any]]:
        async with stream:
            async for message in stream:
                yield {"event": "message", "data": message.model_dump_json(by_alias=True, exclude_none=True)}

    async def _handle_delete(self, request: Request, send: Send) -> None:
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        if not session_id:
            response = PlainTextResponse("Bad Request: Missing session ID", status_code=HTTPStatus.BAD_REQUEST)
        elif session_id not in self.registry:
            response = PlainTextResponse("Session not found", status_code=HTTPStatus.NOT_FOUND)
        else:
            self.registry.remove(session_id)
            response = Response(status_code=HTTPStatus.OK)
        await response(request.scope, request.receive, send)


class MCPEndpoint:
    """ASGI application that hands /mcp requests to the gateway."""

    def __init__(self, gateway: ProtocolGateway):
        self.gateway = gateway

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.gateway.handle_request(scope, receive, send)


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "service": SERVICE_NAME})


def create_app(
    tools: ToolRegistry,
    handlers: Mapping[str, ToolHandler],
    *,
    server_info: Implementation = DEFAULT_SERVER_INFO,
    instructions: str | None = None,
    session_idle_timeout: float | None = None,
    serialize_session_requests: bool = False,
    lifespan: Lifespan | None = None,
) -> Starlette:
    """Build the Starlette application.

    The dispatch table is validated against ``tools`` here, so a mismatch
    fails at startup with ConfigurationError.

    Usage:
        app = create_app(ToolRegistry(TOOL_SCHEMAS), build_tool_handlers(client))
        uvicorn.run(app, host="0.0.0.0", port=3000)
    """
    router = DispatchRouter(tools, handlers)

    def make_transport(session_id: str) -> SessionTransport:
        return SessionTransport(
            session_id,
            tools=tools,
            router=router,
            server_info=server_info,
            instructions=instructions,
            serialize_requests=serialize_session_requests,
        )

    registry = SessionRegistry(make_transport, idle_timeout=session_idle_timeout)
    gateway = ProtocolGateway(registry)

    @contextlib.asynccontextmanager
    async def app_lifespan(app: Starlette) -> AsyncIterator[None]:
        async with contextlib.AsyncExitStack() as stack:
            if lifespan is not None:
                await stack.enter_async_context(lifespan(app))
            async with anyio.create_task_group() as tg:
                tg.start_soon(registry.run_sweeper)
                logger.info("Gateway started with %d tools", len(tools))
                try:
                    yield
                finally:
                    logger.info("Gateway shutting down; closing %d sessions", len(registry))
                    registry.close_all()
                    tg.cancel_scope.cancel()

    app = Starlette(
        routes=[
            Route("/health", endpoint=health, methods=["GET"]),
            Route("/mcp", endpoint=MCPEndpoint(gateway), methods=["GET", "POST", "DELETE"]),
        ],
        lifespan=app_lifespan,
    )
    app.state.gateway = gateway
    app.state.router = router
    return app
