from linear_mcp.types.base import (
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    ClientCapabilities,
    Implementation,
    MCPModel,
    Result,
    ServerCapabilities,
)
from linear_mcp.types.initialize import InitializeRequestParams, InitializeResult
from linear_mcp.types.json_rpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    INVALID_SESSION,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    ErrorData,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCResultResponse,
    RequestId,
    dump_message,
)
from linear_mcp.types.tools import CallToolRequestParams, CallToolResult, ListToolsResult, TextContent, Tool

__all__ = [
    "CallToolRequestParams",
    "CallToolResult",
    "ClientCapabilities",
    "ErrorData",
    "Implementation",
    "InitializeRequestParams",
    "InitializeResult",
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "INVALID_SESSION",
    "JSONRPC_VERSION",
    "JSONRPCErrorResponse",
    "JSONRPCMessage",
    "JSONRPCMessageAdapter",
    "JSONRPCNotification",
    "JSONRPCRequest",
    "JSONRPCResponse",
    "JSONRPCResultResponse",
    "LATEST_PROTOCOL_VERSION",
    "ListToolsResult",
    "MCPModel",
    "METHOD_NOT_FOUND",
    "PARSE_ERROR",
    "RequestId",
    "Result",
    "ServerCapabilities",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "TextContent",
    "Tool",
    "dump_message",
]
