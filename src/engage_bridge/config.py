"""Adapter and server configuration with environment variable support.

Both models load from environment variables (and an optional ``.env`` file)
so the same image can be deployed against different Engage domains.

Example:
    ```bash
    export ENGAGE_API_URL=https://acme.api.engagement.dimelo.com/1.0
    export ENGAGE_API_ACCESS_TOKEN=...
    export ENGAGE_WEBHOOK_VALIDATION_TOKEN=...
    export ENGAGE_BOT_CATEGORY_ID=5f1a...
    export ENGAGE_AGENT_CATEGORY_ID=5f1b...
    export ENGAGE_SERVER_PORT=3978
    ```
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngageSettings(BaseSettings):
    """Settings for talking to the RingCentral Engage API."""

    api_url: str = Field(
        default="https://localhost/1.0",
        description="Engage Digital API base URL, including the /1.0 version segment",
    )
    api_access_token: SecretStr = Field(
        default=SecretStr(""),
        description="API access token sent as a Bearer token",
    )
    webhook_validation_token: SecretStr = Field(
        default=SecretStr(""),
        description="Token Engage echoes in hub.verify_token during subscription",
    )
    source_id: str = Field(
        default="",
        description="Engage source id used for content created by the bot",
    )
    bot_category_id: str = Field(
        default="",
        description="Thread category marking threads handled by the bot",
    )
    agent_category_id: str = Field(
        default="",
        description="Thread category routing threads to human agents",
    )
    webhook_path: str = Field(
        default="/api/ringcentral",
        description="HTTP path the webhook endpoint is mounted on",
    )
    request_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for Engage API calls",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries for transient Engage API failures",
    )
    retry_base_delay: float = Field(
        default=0.5,
        ge=0,
        description="Base delay in seconds for exponential retry backoff",
    )
    handoff_phrases_file: Path | None = Field(
        default=None,
        description="Optional YAML file with agent/bot handoff phrases",
    )

    model_config = SettingsConfigDict(
        env_prefix="ENGAGE_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("webhook_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        return value if value.startswith("/") else f"/{value}"

    def category_for(self, target: str) -> str:
        """Return the thread category id configured for a handoff target value."""
        return self.agent_category_id if target == "agent" else self.bot_category_id

    def masked(self) -> dict[str, Any]:
        """Return settings as a dict with secrets masked, safe to print."""
        data = self.model_dump()
        for key in ("api_access_token", "webhook_validation_token"):
            secret: SecretStr = getattr(self, key)
            data[key] = "********" if secret.get_secret_value() else ""
        return data


class ServerSettings(BaseSettings):
    """Settings for the uvicorn process serving the webhook."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=3978, description="Server port")
    log_level: Literal["trace", "debug", "info", "warning", "error", "critical"] = Field(
        default="info",
        description="Logging level",
    )
    reload: bool = Field(
        default=False,
        description="Enable auto-reload on code changes (development only)",
    )
    access_log: bool = Field(default=True, description="Enable uvicorn access logging")

    model_config = SettingsConfigDict(
        env_prefix="ENGAGE_SERVER_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )
