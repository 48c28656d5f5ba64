"""Shared plumbing for the Linear tool handlers."""

from __future__ import annotations

import json
from typing import Any

from linear_mcp.exceptions import HandlerError
from linear_mcp.linear.client import LinearGraphQLClient
from linear_mcp.types import CallToolResult, TextContent


class BaseHandler:
    """Base class for handlers that call the Linear API."""

    def __init__(self, client: LinearGraphQLClient | None):
        self._client = client

    @property
    def client(self) -> LinearGraphQLClient:
        if self._client is None:
            raise HandlerError("Linear API key is not configured. Set LINEAR_API_KEY and restart the server.")
        return self._client

    @staticmethod
    def require(arguments: dict[str, Any], *names: str) -> None:
        missing = [name for name in names if arguments.get(name) in (None, "")]
        if missing:
            raise HandlerError(f"Missing required argument(s): {', '.join(missing)}")

    @staticmethod
    def respond(data: Any) -> CallToolResult:
        return CallToolResult(
            content=[TextContent(text=json.dumps(data, indent=2))],
            structured_content=data if isinstance(data, dict) else None,
        )
