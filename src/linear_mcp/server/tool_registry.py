"""Static registry of the tools this server exposes."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from linear_mcp.exceptions import ConfigurationError
from linear_mcp.types import Tool


class ToolRegistry:
    """Ordered, read-only mapping of tool name to its descriptor.

    Built once at startup. Registering the same name twice is a configuration
    error, not something that can happen while serving requests.
    """

    def __init__(self, tools: Iterable[Tool]):
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ConfigurationError(f"Tool registered more than once: {tool.name}")
            self._tools[tool.name] = tool

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    @property
    def names(self) -> frozenset[str]:
        return frozenset(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
