"""Issue tools: create, search, update and delete."""

from __future__ import annotations

from typing import Any

from linear_mcp.exceptions import HandlerError
from linear_mcp.linear.handlers.base import BaseHandler
from linear_mcp.types import CallToolResult

ISSUE_FIELDS = """
  id
  identifier
  title
  description
  priority
  url
  state { id name type }
  assignee { id name }
  team { id key name }
"""

CREATE_ISSUE_MUTATION = f"""
mutation CreateIssue($input: IssueCreateInput!) {{
  issueCreate(input: $input) {{
    success
    issue {{ {ISSUE_FIELDS} }}
  }}
}}
"""

SEARCH_ISSUES_QUERY = f"""
query SearchIssues($filter: IssueFilter, $first: Int) {{
  issues(filter: $filter, first: $first) {{
    nodes {{ {ISSUE_FIELDS} }}
  }}
}}
"""

UPDATE_ISSUE_MUTATION = f"""
mutation UpdateIssue($id: String!, $input: IssueUpdateInput!) {{
  issueUpdate(id: $id, input: $input) {{
    success
    issue {{ {ISSUE_FIELDS} }}
  }}
}}
"""

DELETE_ISSUE_MUTATION = """
mutation DeleteIssue($id: String!) {
  issueDelete(id: $id) { success }
}
"""

DEFAULT_SEARCH_LIMIT = 50
_CREATE_FIELDS = ("title", "teamId", "description", "priority", "assigneeId", "labelIds")
_UPDATE_FIELDS = ("title", "description", "priority", "stateId", "assigneeId")


def _pick(arguments: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    return {name: arguments[name] for name in fields if arguments.get(name) is not None}


def build_issue_filter(arguments: dict[str, Any]) -> dict[str, Any]:
    issue_filter: dict[str, Any] = {}
    if query := arguments.get("query"):
        issue_filter["or"] = [
            {"title": {"containsIgnoreCase": query}},
            {"description": {"containsIgnoreCase": query}},
        ]
    if team_ids := arguments.get("teamIds"):
        issue_filter["team"] = {"id": {"in": team_ids}}
    if assignee_ids := arguments.get("assigneeIds"):
        issue_filter["assignee"] = {"id": {"in": assignee_ids}}
    if states := arguments.get("states"):
        issue_filter["state"] = {"name": {"in": states}}
    return issue_filter


class IssueHandler(BaseHandler):
    async def create_issue(self, arguments: dict[str, Any]) -> CallToolResult:
        self.require(arguments, "title", "teamId")
        data = await self.client.execute(CREATE_ISSUE_MUTATION, {"input": _pick(arguments, _CREATE_FIELDS)})
        result = data.get("issueCreate") or {}
        if not result.get("success"):
            raise HandlerError("Failed to create issue")
        return self.respond(result["issue"])

    async def search_issues(self, arguments: dict[str, Any]) -> CallToolResult:
        variables = {
            "filter": build_issue_filter(arguments),
            "first": arguments.get("first") or DEFAULT_SEARCH_LIMIT,
        }
        data = await self.client.execute(SEARCH_ISSUES_QUERY, variables)
        return self.respond({"issues": (data.get("issues") or {}).get("nodes", [])})

    async def update_issue(self, arguments: dict[str, Any]) -> CallToolResult:
        self.require(arguments, "id")
        changes = _pick(arguments, _UPDATE_FIELDS)
        if not changes:
            raise HandlerError("Nothing to update: pass at least one field besides id")
        data = await self.client.execute(UPDATE_ISSUE_MUTATION, {"id": arguments["id"], "input": changes})
        result = data.get("issueUpdate") or {}
        if not result.get("success"):
            raise HandlerError(f"Failed to update issue {arguments['id']}")
        return self.respond(result["issue"])

    async def delete_issue(self, arguments: dict[str, Any]) -> CallToolResult:
        self.require(arguments, "id")
        data = await self.client.execute(DELETE_ISSUE_MUTATION, {"id": arguments["id"]})
        if not (data.get("issueDelete") or {}).get("success"):
            raise HandlerError(f"Failed to delete issue {arguments['id']}")
        return self.respond({"deleted": arguments["id"]})
