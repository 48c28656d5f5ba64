"""Models for the initialize handshake."""

from typing import Annotated

from pydantic import Field

from linear_mcp.types.base import (
    LATEST_PROTOCOL_VERSION,
    ClientCapabilities,
    Implementation,
    MCPModel,
    Result,
    ServerCapabilities,
)


class InitializeRequestParams(MCPModel):
    """Parameters for the initialize request.

    Every field is optional so that a bare ``{"params": {}}`` still starts a
    session; missing values fall back to the latest protocol revision and an
    anonymous client.
    """

    protocol_version: Annotated[str, Field(alias="protocolVersion")] = LATEST_PROTOCOL_VERSION
    capabilities: ClientCapabilities = Field(default_factory=ClientCapabilities)
    client_info: Annotated[Implementation | None, Field(alias="clientInfo")] = None


class InitializeResult(Result):
    """Server's response to an initialize request."""

    protocol_version: Annotated[str, Field(alias="protocolVersion")]
    capabilities: ServerCapabilities
    server_info: Annotated[Implementation, Field(alias="serverInfo")]
    instructions: str | None = None
