import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bitbucket_toolkit.platform import (
    Platform,
    detect_platform,
    extract_workspace_from_url,
    normalize_base_url,
)
from bitbucket_toolkit.services.executor import RetryPolicy

LogLevel = Literal["debug", "info", "warning", "error"]


class ConfigError(ValueError):
    pass


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    bitbucket_url: str = Field(default="http://localhost:7990")
    bitbucket_token: str | None = Field(default=None, repr=False)
    bitbucket_workspace: str | None = Field(
        default=None, description="Workspace (Cloud) or project key (DC) used when none is given."
    )
    bitbucket_insecure: bool = Field(default=False, description="Skip TLS verification.")
    bitbucket_timeout_ms: int = Field(default=30_000, gt=0)
    bitbucket_max_retries: int = Field(default=3, ge=0, le=10)
    bitbucket_retry_delay_ms: int = Field(default=1000, gt=0)
    log_level: LogLevel = Field(default="info")

    @property
    def api_url(self) -> str:
        return normalize_base_url(self.bitbucket_url)

    @property
    def platform(self) -> Platform:
        return detect_platform(self.api_url)

    @property
    def default_workspace(self) -> str | None:
        return self.bitbucket_workspace or extract_workspace_from_url(self.bitbucket_url)

    @property
    def timeout_seconds(self) -> float:
        return self.bitbucket_timeout_ms / 1000

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.bitbucket_max_retries,
            base_delay_ms=self.bitbucket_retry_delay_ms,
        )

    def require_token(self) -> str:
        if not self.bitbucket_token:
            raise ConfigError("Missing required configuration: BITBUCKET_TOKEN")
        return self.bitbucket_token


def configure_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request at INFO, which would echo full URLs twice
    logging.getLogger("httpx").setLevel(logging.WARNING)
