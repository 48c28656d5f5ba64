"""Run the server: ``python -m linear_mcp`` or ``linear-mcp``."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator

import uvicorn
from starlette.applications import Starlette

from linear_mcp.config import Settings
from linear_mcp.linear import TOOL_SCHEMAS, LinearGraphQLClient, build_tool_handlers
from linear_mcp.server import ToolRegistry, create_app
from linear_mcp.types import Implementation
from linear_mcp.utilities.logging import configure_logging

logger = logging.getLogger(__name__)


def build_app(settings: Settings) -> Starlette:
    client: LinearGraphQLClient | None = None
    if settings.linear_api_key:
        client = LinearGraphQLClient(settings.linear_api_key, base_url=settings.linear_api_url)
    else:
        logger.warning("LINEAR_API_KEY is not set; tools will be listed but calls will fail")

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        try:
            yield
        finally:
            if client is not None:
                await client.aclose()

    return create_app(
        ToolRegistry(TOOL_SCHEMAS),
        build_tool_handlers(client),
        server_info=Implementation(name=settings.server_name, version=settings.server_version),
        session_idle_timeout=settings.session_idle_timeout,
        serialize_session_requests=settings.serialize_session_requests,
        lifespan=lifespan,
    )


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)
    app = build_app(settings)
    logger.info("Linear MCP server running on http://%s:%d", settings.host, settings.port)
    logger.info("Streamable HTTP endpoint: http://%s:%d/mcp", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
