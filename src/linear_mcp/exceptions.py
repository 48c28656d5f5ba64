"""Exceptions raised by the session and dispatch layers and by tool handlers."""

from enum import Enum
from typing import Any

from linear_mcp.types import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    INVALID_SESSION,
    METHOD_NOT_FOUND,
    ErrorData,
)


class LinearMCPError(Exception):
    """Base error for linear-mcp."""


class ConfigurationError(LinearMCPError):
    """The tool registry and dispatch table disagree, or a tool is registered twice."""


class ErrorKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    METHOD_NOT_FOUND = "method_not_found"
    INTERNAL_ERROR = "internal_error"


_DEFAULT_CODES: dict[ErrorKind, int] = {
    ErrorKind.INVALID_REQUEST: INVALID_REQUEST,
    ErrorKind.METHOD_NOT_FOUND: METHOD_NOT_FOUND,
    ErrorKind.INTERNAL_ERROR: INTERNAL_ERROR,
}


class ProtocolError(LinearMCPError):
    """An error that is reported to the client inside a JSON-RPC error envelope.

    Attributes:
        kind: which of the three client-visible error families this belongs to
        error: the ErrorData sent on the wire
    """

    kind: ErrorKind
    error: ErrorData

    def __init__(self, kind: ErrorKind, message: str, *, code: int | None = None, data: Any | None = None):
        super().__init__(message)
        self.kind = kind
        self.error = ErrorData(code=code if code is not None else _DEFAULT_CODES[kind], message=message, data=data)

    @classmethod
    def invalid_request(cls, message: str, data: Any | None = None) -> "ProtocolError":
        return cls(ErrorKind.INVALID_REQUEST, message, data=data)

    @classmethod
    def invalid_session(cls, message: str) -> "ProtocolError":
        return cls(ErrorKind.INVALID_REQUEST, message, code=INVALID_SESSION)

    @classmethod
    def method_not_found(cls, message: str) -> "ProtocolError":
        return cls(ErrorKind.METHOD_NOT_FOUND, message)

    @classmethod
    def internal_error(cls, message: str = "Internal error") -> "ProtocolError":
        return cls(ErrorKind.INTERNAL_ERROR, message)


class HandlerError(LinearMCPError):
    """Expected failure inside a tool handler (bad arguments, upstream API error)."""


class ToolNotFoundError(HandlerError):
    """Raised by a handler that does not implement the requested tool."""
