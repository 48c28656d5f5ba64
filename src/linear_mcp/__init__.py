"""Linear tools exposed over the Model Context Protocol's streamable HTTP transport."""

from linear_mcp.exceptions import ConfigurationError, ErrorKind, HandlerError, ProtocolError, ToolNotFoundError
from linear_mcp.server import SessionRegistry, SessionTransport, ToolRegistry, create_app

__all__ = [
    "ConfigurationError",
    "ErrorKind",
    "HandlerError",
    "ProtocolError",
    "SessionRegistry",
    "SessionTransport",
    "ToolNotFoundError",
    "ToolRegistry",
    "create_app",
]
