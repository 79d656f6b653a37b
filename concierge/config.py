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
    """Concierge configuration. All values come from environment variables."""

    # Remote responder
    api_base_url: str = Field(default="https://api.yourcompany.com/v1")
    api_token: str = Field(default="")
    remote_timeout_seconds: float = Field(default=10.0)
    remote_transfer_timeout_seconds: float = Field(default=30.0)
    connectivity_timeout_seconds: float = Field(default=3.0)

    # Database
    database_path: Path = Field(default=Path("data/concierge.db"))

    # Turso (hosted libSQL); overrides database_path when set
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Conversation
    search_result_limit: int = Field(default=10)
    max_message_length: int = Field(default=1000)

    # Voice
    voice_language: str = Field(default="en-US")
    voice_rate: float = Field(default=0.5)
    voice_pitch: float = Field(default=1.0)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="CONCIERGE_",
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

    def api_headers(self) -> dict[str, str]:
        """Build the default headers for remote calls."""
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers


settings = Settings()
