"""Linear API collaborators: GraphQL client, tool schemas and handlers."""

from linear_mcp.linear.client import LinearAPIError, LinearGraphQLClient
from linear_mcp.linear.handlers import build_tool_handlers
from linear_mcp.linear.schemas import TOOL_SCHEMAS

__all__ = ["LinearAPIError", "LinearGraphQLClient", "TOOL_SCHEMAS", "build_tool_handlers"]
