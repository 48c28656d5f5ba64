from typing import Any
from unittest.mock import AsyncMock

import pytest

from linear_mcp.exceptions import HandlerError
from linear_mcp.server.dispatch import DispatchRouter
from linear_mcp.server.tool_registry import ToolRegistry
from linear_mcp.server.transport import SessionTransport
from linear_mcp.types import CallToolResult, Implementation, TextContent, Tool

SERVER_INFO = Implementation(name="test-server", version="0.1.0")


@pytest.fixture
def tools() -> ToolRegistry:
    return ToolRegistry(
        [
            Tool(
                name="echo",
                description="Echoes the input",
                input_schema={"type": "object", "properties": {"message": {"type": "string"}}},
            ),
            Tool(name="explode", description="Always fails", input_schema={"type": "object", "properties": {}}),
        ]
    )


@pytest.fixture
def handlers() -> dict[str, AsyncMock]:
    async def echo(arguments: dict[str, Any]) -> CallToolResult:
        return CallToolResult(content=[TextContent(text=arguments.get("message", ""))])

    return {
        "echo": AsyncMock(side_effect=echo),
        "explode": AsyncMock(side_effect=HandlerError("upstream exploded")),
    }


@pytest.fixture
def router(tools: ToolRegistry, handlers: dict[str, AsyncMock]) -> DispatchRouter:
    return DispatchRouter(tools, handlers)


@pytest.fixture
def transport(tools: ToolRegistry, router: DispatchRouter) -> SessionTransport:
    return SessionTransport("test-session", tools=tools, router=router, server_info=SERVER_INFO)
