"""Response sinks: where a session transport writes outgoing messages.

Two implementations back the two delivery channels of a session:

- RequestResponseSink: one HTTP POST, one correlated response, then done.
- PushChannel: a long-lived stream drained by the GET /mcp event stream.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from linear_mcp.types import JSONRPCErrorResponse, JSONRPCMessage, JSONRPCResultResponse

logger = logging.getLogger(__name__)

PUSH_BUFFER_SIZE = 32


@runtime_checkable
class ResponseSink(Protocol):
    @property
    def closed(self) -> bool: ...

    async def send(self, message: JSONRPCMessage) -> None:
        """Deliver a message. Silently dropped once the sink is closed."""
        ...

    def close(self) -> None:
        """Release the sink. Idempotent."""
        ...


class RequestResponseSink:
    """Captures the single response to one POSTed request."""

    def __init__(self) -> None:
        self._response: JSONRPCResultResponse | JSONRPCErrorResponse | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def response(self) -> JSONRPCResultResponse | JSONRPCErrorResponse | None:
        return self._response

    async def send(self, message: JSONRPCMessage) -> None:
        if self._closed:
            logger.debug("Dropping message for closed request sink")
            return
        if not isinstance(message, JSONRPCResultResponse | JSONRPCErrorResponse):
            raise TypeError(f"Request/response channel only carries responses, got {type(message).__name__}")
        self._response = message
        self._closed = True

    def close(self) -> None:
        self._closed = True


class PushChannel:
    """Server-to-client stream attached with GET /mcp.

    The transport writes into the send side; the HTTP layer iterates the
    receive side returned by ``create``.
    """

    def __init__(self, send_stream: MemoryObjectSendStream[JSONRPCMessage]) -> None:
        self._send = send_stream
        self._closed = False

    @classmethod
    def create(
        cls, max_buffer_size: int = PUSH_BUFFER_SIZE
    ) -> tuple[PushChannel, MemoryObjectReceiveStream[JSONRPCMessage]]:
        send_stream, receive_stream = anyio.create_memory_object_stream[JSONRPCMessage](max_buffer_size)
        return cls(send_stream), receive_stream

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, message: JSONRPCMessage) -> None:
        if self._closed:
            return
        try:
            await self._send.send(message)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            logger.debug("Push channel reader went away")
            self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._send.close()
