"""Tool handlers and the explicit tool name -> handler table."""

from linear_mcp.linear.client import LinearGraphQLClient
from linear_mcp.linear.handlers.base import BaseHandler
from linear_mcp.linear.handlers.issues import IssueHandler
from linear_mcp.linear.handlers.projects import ProjectHandler
from linear_mcp.linear.handlers.teams import TeamHandler
from linear_mcp.linear.handlers.users import UserHandler
from linear_mcp.server.dispatch import ToolHandler


def build_tool_handlers(client: LinearGraphQLClient | None) -> dict[str, ToolHandler]:
    """Return the dispatch table for every tool in ``TOOL_SCHEMAS``.

    ``client`` may be None when no API key is configured; the tools are still
    listed, and calling one reports the missing credential.
    """
    users = UserHandler(client)
    teams = TeamHandler(client)
    issues = IssueHandler(client)
    projects = ProjectHandler(client)
    return {
        "linear_get_user": users.get_user,
        "linear_get_teams": teams.get_teams,
        "linear_create_issue": issues.create_issue,
        "linear_search_issues": issues.search_issues,
        "linear_update_issue": issues.update_issue,
        "linear_delete_issue": issues.delete_issue,
        "linear_get_project": projects.get_project,
        "linear_search_projects": projects.search_projects,
    }


__all__ = [
    "BaseHandler",
    "IssueHandler",
    "ProjectHandler",
    "TeamHandler",
    "UserHandler",
    "build_tool_handlers",
]
