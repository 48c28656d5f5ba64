from __future__ import annotations

from typing import Any

from linear_mcp.linear.handlers.base import BaseHandler
from linear_mcp.types import CallToolResult

VIEWER_QUERY = """
query Viewer {
  viewer {
    id
    name
    email
    displayName
    active
    organization { id name urlKey }
  }
}
"""


class UserHandler(BaseHandler):
    async def get_user(self, arguments: dict[str, Any]) -> CallToolResult:
        data = await self.client.execute(VIEWER_QUERY)
        return self.respond(data.get("viewer"))
