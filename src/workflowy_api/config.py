"""Configuration loading and logging setup."""

import logging
import sys

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, APIConfiguration

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ServerConfig(BaseSettings):
    """Server settings read from ``WORKFLOWY_*`` environment variables.

    The API key is also picked up from ``WORKFLOWY_APIKEY``.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOWY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_key: SecretStr = Field(
        validation_alias=AliasChoices("WORKFLOWY_API_KEY", "WORKFLOWY_APIKEY")
    )
    base_url: str = Field(default=DEFAULT_BASE_URL)
    timeout: float = Field(default=DEFAULT_TIMEOUT, ge=1.0, le=300.0)
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    log_level: str = Field(default="INFO")

    # HTTP proxy transport
    http_host: str = Field(default="127.0.0.1")
    http_port: int = Field(default=8000, ge=1, le=65535)

    def get_api_config(self) -> APIConfiguration:
        return APIConfiguration(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            user_agent=self.user_agent,
        )


def setup_logging(level: str | int = "INFO") -> None:
    """Route the logging module to stderr (stdout belongs to MCP stdio)."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    has_console = any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
        for h in root.handlers
    )
    if not has_console:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
