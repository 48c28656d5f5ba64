"""Descriptors for the Linear tools, in the order tools/list reports them."""

from linear_mcp.types import Tool

_NO_ARGUMENTS = {"type": "object", "properties": {}, "required": []}

TOOL_SCHEMAS: list[Tool] = [
    Tool(
        name="linear_get_user",
        description="Get information about the authenticated Linear user.",
        input_schema=_NO_ARGUMENTS,
    ),
    Tool(
        name="linear_get_teams",
        description="List the teams in the workspace with their workflow states and labels.",
        input_schema=_NO_ARGUMENTS,
    ),
    Tool(
        name="linear_create_issue",
        description="Create a new issue in a team.",
        input_schema={
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Issue title"},
                "teamId": {"type": "string", "description": "Team ID"},
                "description": {"type": "string", "description": "Issue description (markdown)"},
                "priority": {"type": "integer", "minimum": 0, "maximum": 4, "description": "0 (none) to 4 (low)"},
                "assigneeId": {"type": "string", "description": "User ID to assign"},
                "labelIds": {"type": "array", "items": {"type": "string"}, "description": "Label IDs"},
            },
            "required": ["title", "teamId"],
        },
    ),
    Tool(
        name="linear_search_issues",
        description="Search issues by text and filters.",
        input_schema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Text to match in title or description"},
                "teamIds": {"type": "array", "items": {"type": "string"}, "description": "Restrict to these teams"},
                "assigneeIds": {"type": "array", "items": {"type": "string"}, "description": "Restrict to assignees"},
                "states": {"type": "array", "items": {"type": "string"}, "description": "Workflow state names"},
                "first": {"type": "integer", "minimum": 1, "maximum": 100, "description": "Max results (50)"},
            },
            "required": [],
        },
    ),
    Tool(
        name="linear_update_issue",
        description="Update fields of an existing issue.",
        input_schema={
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Issue ID"},
                "title": {"type": "string"},
                "description": {"type": "string"},
                "priority": {"type": "integer", "minimum": 0, "maximum": 4},
                "stateId": {"type": "string", "description": "Workflow state ID"},
                "assigneeId": {"type": "string"},
            },
            "required": ["id"],
        },
    ),
    Tool(
        name="linear_delete_issue",
        description="Delete an issue.",
        input_schema={
            "type": "object",
            "properties": {"id": {"type": "string", "description": "Issue identifier (e.g. ENG-123) or ID"}},
            "required": ["id"],
        },
    ),
    Tool(
        name="linear_get_project",
        description="Get a project with its issues.",
        input_schema={
            "type": "object",
            "properties": {"id": {"type": "string", "description": "Project ID"}},
            "required": ["id"],
        },
    ),
    Tool(
        name="linear_search_projects",
        description="Find projects by name.",
        input_schema={
            "type": "object",
            "properties": {"name": {"type": "string", "description": "Project name to match"}},
            "required": ["name"],
        },
    ),
]
