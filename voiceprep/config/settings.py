"""
Application settings and configuration management.

Uses pydantic-settings for environment variable loading.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "VoicePrep"
    app_version: str = "0.1.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Evaluation service (OpenAI-compatible chat completions)
    evaluation_api_url: str = "https://openrouter.ai/api/v1/chat/completions"
    evaluation_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("evaluation_api_key", "openai_api_key"),
    )
    evaluation_model: str = "openai/gpt-oss-20b:free"
    evaluation_temperature: float = 0.7
    evaluation_max_tokens: int = 1500
    evaluation_timeout_seconds: float = 60.0

    # TTS configuration
    server_side_tts: bool = False  # Attach edge-tts audio to speak requests
    tts_voice: str = "default"

    # Interview settings
    min_questions: int = 5
    max_questions: int = 8
    advance_delay_seconds: float = 2.0  # Pause after a scored answer
    clock_interval_seconds: float = 1.0

    # CORS - stored as comma-separated string in env
    cors_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        validation_alias="cors_origins"
    )

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
