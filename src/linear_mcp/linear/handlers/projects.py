from __future__ import annotations

from typing import Any

from linear_mcp.exceptions import HandlerError
from linear_mcp.linear.handlers.base import BaseHandler
from linear_mcp.types import CallToolResult

PROJECT_QUERY = """
query Project($id: String!) {
  project(id: $id) {
    id
    name
    description
    state
    url
    teams { nodes { id key name } }
    issues { nodes { id identifier title state { name } } }
  }
}
"""

SEARCH_PROJECTS_QUERY = """
query SearchProjects($filter: ProjectFilter) {
  projects(filter: $filter) {
    nodes { id name description state url }
  }
}
"""


class ProjectHandler(BaseHandler):
    async def get_project(self, arguments: dict[str, Any]) -> CallToolResult:
        self.require(arguments, "id")
        data = await self.client.execute(PROJECT_QUERY, {"id": arguments["id"]})
        project = data.get("project")
        if project is None:
            raise HandlerError(f"Project not found: {arguments['id']}")
        return self.respond(project)

    async def search_projects(self, arguments: dict[str, Any]) -> CallToolResult:
        self.require(arguments, "name")
        variables = {"filter": {"name": {"containsIgnoreCase": arguments["name"]}}}
        data = await self.client.execute(SEARCH_PROJECTS_QUERY, variables)
        return self.respond({"projects": (data.get("projects") or {}).get("nodes", [])})
