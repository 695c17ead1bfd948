from dataclasses import dataclass
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

PROJECT_KEY_PREFIX = "sk-proj-"


@dataclass(frozen=True)
class AssistantConfig:
    """Remote credentials and polling tunables handed to the orchestrator."""

    api_key: str | None = None
    assistant_id: str | None = None
    project_id: str | None = None
    organization_id: str | None = None
    base_url: str | None = None
    poll_interval_seconds: float = 0.7
    run_timeout_seconds: float = 20.0
    reply_history_limit: int = 10
    request_timeout_seconds: float = 30.0

    def validate(self) -> None:
        """Raise ConfigurationError if the credential or assistant id is unusable."""
        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY is missing")
        if not self.assistant_id:
            raise ConfigurationError("ASSISTANT_ID is missing")
        if self.api_key.startswith(PROJECT_KEY_PREFIX) and not self.project_id:
            raise ConfigurationError(
                "OPENAI_PROJECT_ID is required when using a sk-proj key"
            )


class Settings(BaseSettings):
    """Application configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    openai_api_key: str | None = None
    openai_project_id: str | None = None
    openai_org_id: str | None = None
    openai_base_url: str | None = None
    assistant_id: str | None = None

    poll_interval_seconds: float = 0.7
    run_timeout_seconds: float = 20.0
    reply_history_limit: int = 10
    request_timeout_seconds: float = 30.0

    cors_origins: str = "*"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        str_strip_whitespace=True,
        extra="ignore",
    )

    def assistant_config(self) -> AssistantConfig:
        """Build the per-turn AssistantConfig; blank values count as unset."""
        return AssistantConfig(
            api_key=self.openai_api_key or None,
            assistant_id=self.assistant_id or None,
            project_id=self.openai_project_id or None,
            organization_id=self.openai_org_id or None,
            base_url=self.openai_base_url or None,
            poll_interval_seconds=self.poll_interval_seconds,
            run_timeout_seconds=self.run_timeout_seconds,
            reply_history_limit=self.reply_history_limit,
            request_timeout_seconds=self.request_timeout_seconds,
        )


def get_settings() -> Settings:
    """Return the application settings singleton (loaded from env / .env)."""
    global _SETTINGS
    try:
        return _SETTINGS
    except NameError:
        _SETTINGS = Settings()
        return _SETTINGS
