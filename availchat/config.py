"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """availchat configuration. All values come from environment variables."""

    # Identity of the operator whose availability is managed
    user_id: str = Field(default="")

    # Availability backend (persistence / query collaborator)
    availability_api_url: str = Field(default="http://localhost:3000/api")
    availability_api_token: str = Field(default="")
    http_timeout_seconds: float = Field(default=20.0)

    # Remote completion: "none", "http" (availability backend AI endpoint) or "anthropic"
    completion_backend: str = Field(default="none")
    completion_api_url: str = Field(default="")

    # Anthropic
    anthropic_api_key: str = Field(default="")
    claude_model: str = Field(default="claude-sonnet-4-5-20250929")

    # Dates are resolved in this timezone
    timezone: str = Field(default="America/Chicago")

    # Local storage for chat history and window state
    storage_dir: Path = Field(default=Path("data/storage"))

    # Conversation
    recent_actions_limit: int = Field(default=10)
    history_window: int = Field(default=5)
    intent_confidence_threshold: float = Field(default=0.4)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="AVAILCHAT_",
        env_file=_env_file(),
        env_file_encoding="utf-8",
        extra="forbid",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_completion_api_url(self) -> str:
        """Endpoint of the remote completion service, defaulting to the backend's AI route."""
        if self.completion_api_url.strip():
            return self.completion_api_url.strip()
        return self.availability_api_url.rstrip("/") + "/ai/chat/process"


settings = Settings()
