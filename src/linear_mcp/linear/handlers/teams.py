from __future__ import annotations

from typing import Any

from linear_mcp.linear.handlers.base import BaseHandler
from linear_mcp.types import CallToolResult

TEAMS_QUERY = """
query Teams {
  teams {
    nodes {
      id
      name
      key
      states { nodes { id name type } }
      labels { nodes { id name color } }
    }
  }
}
"""


class TeamHandler(BaseHandler):
    async def get_teams(self, arguments: dict[str, Any]) -> CallToolResult:
        data = await self.client.execute(TEAMS_QUERY)
        return self.respond({"teams": (data.get("teams") or {}).get("nodes", [])})
