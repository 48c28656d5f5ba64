"""Per-session transport.

A SessionTransport turns JSON-RPC messages addressed to one session into
responses. It owns the session state machine

    UNINITIALIZED --initialize--> ACTIVE --close--> CLOSED

and the session's two delivery channels: the request/response sink passed to
``handle`` for each POST, and an optional push channel attached by GET /mcp
for server-initiated messages.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AsyncExitStack
from enum import Enum
from typing import Any

import anyio
from pydantic import BaseModel, ValidationError

from linear_mcp.exceptions import ProtocolError
from linear_mcp.server.dispatch import DispatchRouter
from linear_mcp.server.sink import PushChannel, ResponseSink
from linear_mcp.server.tool_registry import ToolRegistry
from linear_mcp.types import (
    INTERNAL_ERROR,
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    CallToolRequestParams,
    CallToolResult,
    ErrorData,
    Implementation,
    InitializeRequestParams,
    InitializeResult,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCResultResponse,
    ListToolsResult,
    RequestId,
    ServerCapabilities,
    TextContent,
)

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    CLOSED = "closed"


def _to_result(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        return _to_result(CallToolResult(content=[TextContent(text=value)]))
    raise TypeError(f"Tool handlers must return a model, dict or str, got {type(value).__name__}")


class SessionTransport:
    """Bridges one session's HTTP traffic to the tool registry and dispatch router.

    Args:
        session_id: id of the owning session, used for logging only
        tools: the static tool registry answering tools/list
        router: dispatch router answering tools/call
        server_info: name and version reported in the initialize result
        instructions: optional instructions returned from initialize
        serialize_requests: handle at most one request at a time for this session
    """

    def __init__(
        self,
        session_id: str,
        *,
        tools: ToolRegistry,
        router: DispatchRouter,
        server_info: Implementation,
        instructions: str | None = None,
        serialize_requests: bool = False,
    ):
        self.session_id = session_id
        self._tools = tools
        self._router = router
        self._server_info = server_info
        self._instructions = instructions
        self._request_lock = anyio.Lock() if serialize_requests else None
        self._state = SessionState.UNINITIALIZED
        self._push: PushChannel | None = None
        self._inflight = 0

        self.protocol_version: str | None = None
        self.client_info: Implementation | None = None
        self.on_close: Callable[[SessionTransport], None] | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._state is SessionState.CLOSED

    @property
    def has_push_channel(self) -> bool:
        return self._push is not None and not self._push.closed

    @property
    def inflight_requests(self) -> int:
        """Requests accepted by ``handle`` whose response has not been written yet."""
        return self._inflight

    async def handle(self, message: JSONRPCMessage, sink: ResponseSink) -> None:
        """Process one inbound message, writing at most one response to ``sink``.

        Notifications and client responses produce nothing.
        """
        if self._state is SessionState.CLOSED:
            await sink.send(self._stale_response(getattr(message, "id", None)))
            return

        if isinstance(message, JSONRPCNotification):
            self._handle_notification(message)
            return
        if not isinstance(message, JSONRPCRequest):
            logger.debug("Session %s ignoring client response %r", self.session_id, getattr(message, "id", None))
            return

        self._inflight += 1
        try:
            async with AsyncExitStack() as stack:
                if self._request_lock is not None:
                    await stack.enter_async_context(self._request_lock)
                response = await self._respond(message)
        finally:
            self._inflight -= 1

        if self._state is SessionState.CLOSED:
            logger.info(
                "Session %s closed while handling %s (id=%s); replying with a stale session error",
                self.session_id,
                message.method,
                message.id,
            )
            response = self._stale_response(message.id)
        await sink.send(response)

    def attach(self, channel: PushChannel) -> None:
        """Install the push channel for server-initiated messages."""
        if self._state is SessionState.CLOSED:
            raise ProtocolError.invalid_session(f"Stale session: {self.session_id}")
        if self.has_push_channel:
            raise RuntimeError(f"Session {self.session_id} already has a push channel")
        self._push = channel
        logger.debug("Push channel attached to session %s", self.session_id)

    async def send(self, message: JSONRPCMessage) -> bool:
        """Deliver a server-initiated message over the push channel.

        Returns False when no push channel is attached.
        """
        if self._push is None or self._push.closed:
            logger.debug("No push channel for session %s; dropping message", self.session_id)
            return False
        await self._push.send(message)
        return not self._push.closed

    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> bool:
        return await self.send(JSONRPCNotification(method=method, params=params))

    def close(self) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        if self._push is not None:
            self._push.close()
        logger.debug("Session %s closed", self.session_id)
        if self.on_close is not None:
            self.on_close(self)

    def _stale_response(self, request_id: RequestId | None) -> JSONRPCErrorResponse:
        error = ProtocolError.invalid_session(f"Stale session: {self.session_id}").error
        return JSONRPCErrorResponse(id=request_id, error=error)

    async def _respond(self, request: JSONRPCRequest) -> JSONRPCResponse:
        try:
            result = await self._dispatch(request)
        except ProtocolError as e:
            return JSONRPCErrorResponse(id=request.id, error=e.error)
        except Exception:
            logger.exception("Session %s failed to handle %s", self.session_id, request.method)
            return JSONRPCErrorResponse(
                id=request.id,
                error=ErrorData(code=INTERNAL_ERROR, message="Internal error"),
            )
        return JSONRPCResultResponse(id=request.id, result=_to_result(result))

    async def _dispatch(self, request: JSONRPCRequest) -> Any:
        if self._state is SessionState.UNINITIALIZED:
            if request.method != "initialize":
                raise ProtocolError.invalid_request("Session not initialized")
            return self._initialize(request)

        logger.debug("Session %s handling %s (id=%s)", self.session_id, request.method, request.id)
        match request.method:
            case "initialize":
                raise ProtocolError.invalid_request("Session already initialized")
            case "ping":
                return {}
            case "tools/list":
                return ListToolsResult(tools=self._tools.list_tools())
            case "tools/call":
                try:
                    params = CallToolRequestParams.model_validate(request.params or {})
                except ValidationError as e:
                    raise ProtocolError.invalid_request(
                        "Invalid tools/call params", data=e.errors(include_url=False, include_context=False)
                    ) from e
                return await self._router.call(params.name, params.arguments)
            case _:
                raise ProtocolError.method_not_found(f"Unknown method: {request.method}")

    def _initialize(self, request: JSONRPCRequest) -> InitializeResult:
        try:
            params = InitializeRequestParams.model_validate(request.params or {})
        except ValidationError as e:
            raise ProtocolError.invalid_request(
                "Invalid initialize params", data=e.errors(include_url=False, include_context=False)
            ) from e

        if params.protocol_version in SUPPORTED_PROTOCOL_VERSIONS:
            self.protocol_version = params.protocol_version
        else:
            self.protocol_version = LATEST_PROTOCOL_VERSION
        self.client_info = params.client_info
        self._state = SessionState.ACTIVE
        logger.info(
            "Session %s initialized (client=%s, protocol=%s)",
            self.session_id,
            params.client_info.name if params.client_info else "unknown",
            self.protocol_version,
        )
        return InitializeResult(
            protocol_version=self.protocol_version,
            capabilities=ServerCapabilities(tools={"listChanged": False}),
            server_info=self._server_info,
            instructions=self._instructions,
        )

    def _handle_notification(self, notification: JSONRPCNotification) -> None:
        if notification.method == "notifications/cancelled":
            # Handlers always run to completion; the eventual response is still sent.
            request_id = (notification.params or {}).get("requestId")
            logger.info("Session %s: client cancelled request %s", self.session_id, request_id)
            return
        logger.debug("Session %s received notification %s", self.session_id, notification.method)
