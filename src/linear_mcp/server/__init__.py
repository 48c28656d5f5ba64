from linear_mcp.server.dispatch import DispatchEntry, DispatchRouter, ToolHandler
from linear_mcp.server.gateway import MCP_SESSION_ID_HEADER, ProtocolGateway, create_app
from linear_mcp.server.session_registry import Session, SessionRegistry
from linear_mcp.server.sink import PushChannel, RequestResponseSink, ResponseSink
from linear_mcp.server.tool_registry import ToolRegistry
from linear_mcp.server.transport import SessionState, SessionTransport

__all__ = [
    "DispatchEntry",
    "DispatchRouter",
    "MCP_SESSION_ID_HEADER",
    "ProtocolGateway",
    "PushChannel",
    "RequestResponseSink",
    "ResponseSink",
    "Session",
    "SessionRegistry",
    "SessionState",
    "SessionTransport",
    "ToolHandler",
    "ToolRegistry",
    "create_app",
]
