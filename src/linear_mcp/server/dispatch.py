"""Tool-call routing.

The router owns an explicit table from tool name to an async callable with a
single signature, ``handler(arguments) -> result``. The table is checked
against the tool registry when the router is built, so every listed tool is
callable and nothing callable is unlisted.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from linear_mcp.exceptions import ConfigurationError, ErrorKind, HandlerError, ProtocolError, ToolNotFoundError
from linear_mcp.server.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class DispatchEntry:
    tool_name: str
    handler: ToolHandler
    method_name: str


def _describe(handler: ToolHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class DispatchRouter:
    """Resolves tool names to handlers and normalizes handler failures."""

    def __init__(self, registry: ToolRegistry, handlers: Mapping[str, ToolHandler]):
        missing = registry.names - handlers.keys()
        unlisted = handlers.keys() - registry.names
        if missing or unlisted:
            problems: list[str] = []
            if missing:
                problems.append(f"no handler for {', '.join(sorted(missing))}")
            if unlisted:
                problems.append(f"no schema for {', '.join(sorted(unlisted))}")
            raise ConfigurationError("Dispatch table does not match tool registry: " + "; ".join(problems))

        self._entries: dict[str, DispatchEntry] = {
            tool.name: DispatchEntry(
                tool_name=tool.name,
                handler=handlers[tool.name],
                method_name=_describe(handlers[tool.name]),
            )
            for tool in registry
        }

    def resolve(self, tool_name: str) -> DispatchEntry:
        entry = self._entries.get(tool_name)
        if entry is None:
            raise ProtocolError.method_not_found(f"Unknown tool: {tool_name}")
        return entry

    async def invoke(self, entry: DispatchEntry, arguments: dict[str, Any] | None) -> Any:
        """Call the handler, converting whatever it raises into a ProtocolError."""
        try:
            return await entry.handler(arguments if arguments is not None else {})
        except ToolNotFoundError as e:
            raise ProtocolError.method_not_found(str(e) or f"Unknown tool: {entry.tool_name}") from e
        except ProtocolError as e:
            if e.kind is ErrorKind.METHOD_NOT_FOUND:
                raise
            raise ProtocolError.internal_error(e.error.message) from e
        except HandlerError as e:
            logger.warning("Tool %s failed: %s", entry.tool_name, e)
            raise ProtocolError.internal_error(str(e) or "Internal error") from e
        except Exception as e:
            logger.exception("Unhandled error in %s", entry.method_name)
            raise ProtocolError.internal_error(str(e) or "Internal error") from e

    async def call(self, tool_name: str, arguments: dict[str, Any] | None) -> Any:
        entry = self.resolve(tool_name)
        logger.debug("Dispatching %s to %s", tool_name, entry.method_name)
        return await self.invoke(entry, arguments)
