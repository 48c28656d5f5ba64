"""Minimal async client for the Linear GraphQL API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from linear_mcp.exceptions import HandlerError

logger = logging.getLogger(__name__)

LINEAR_API_URL = "https://api.linear.app/graphql"
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class LinearAPIError(HandlerError):
    """The Linear API rejected a request or could not be reached."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class LinearGraphQLClient:
    """Sends GraphQL operations to Linear with a personal API key.

    Args:
        api_key: Linear API key, sent verbatim in the Authorization header
        base_url: GraphQL endpoint
        http_client: optional preconfigured httpx.AsyncClient; when omitted the
                     client creates and owns one
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = LINEAR_API_URL,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
        self._headers = {"Authorization": api_key, "Content-Type": "application/json"}

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run one operation and return its ``data`` object."""
        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables
        try:
            response = await self._http.post(self._base_url, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            raise LinearAPIError(f"Linear API request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            message = "; ".join(str(error.get("message", error)) for error in errors)
            raise LinearAPIError(f"Linear API error: {message}", errors)
        if response.is_error or not isinstance(body, dict):
            raise LinearAPIError(f"Linear API returned HTTP {response.status_code}")

        logger.debug("Linear operation succeeded (%d bytes)", len(response.content))
        return body.get("data") or {}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> LinearGraphQLClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
