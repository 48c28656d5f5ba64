"""Process settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """linear-mcp settings.

    Read from the environment (and a ``.env`` file when present) without a
    prefix, so ``LINEAR_API_KEY`` and ``PORT`` configure the server directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    linear_api_key: str | None = None
    linear_api_url: str = "https://api.linear.app/graphql"

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    server_name: str = "linear-server"
    server_version: str = "0.1.0"

    session_idle_timeout: float | None = Field(default=None, gt=0)
    """Seconds of inactivity after which a session is evicted. Unset disables expiry."""

    serialize_session_requests: bool = False
    """Handle requests for one session one at a time."""
