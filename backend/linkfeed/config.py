"""
Application configuration using Pydantic Settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GenerationSettings(BaseSettings):
    """Settings for the summary and embedding backends."""

    model_config = SettingsConfigDict(env_prefix="GENERATION_", extra="ignore")

    # API Keys (Anthropic wins when both are set)
    anthropic_api_key: str | None = Field(default=None)
    openai_api_key: str | None = Field(default=None)

    # Summaries
    summary_model_anthropic: str = "claude-3-5-haiku-latest"
    summary_model_openai: str = "gpt-4o-mini"
    summary_max_tokens: int = Field(default=400, ge=16)
    summary_max_attempts: int = Field(
        default=7,
        description="Total summary attempts before giving up",
    )
    summary_initial_backoff_seconds: float = Field(
        default=10.0,
        description="Wait after the first failed attempt; doubles on every further failure",
    )

    # Embeddings
    embedding_backend: Literal["openai", "local", "hash"] = "openai"
    openai_embedding_model: str = "text-embedding-3-small"
    local_embedding_model: str = "all-MiniLM-L6-v2"
    embedding_dimension: int = Field(default=1536, ge=8)

    # Client-side throttling of generation calls
    requests_per_minute: int = Field(default=60, ge=1)

    @field_validator("summary_max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("summary_max_attempts must be at least 1")
        return v

    @field_validator("summary_initial_backoff_seconds")
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        if v < 0:
            raise ValueError("summary_initial_backoff_seconds must not be negative")
        return v


class ExtractionSettings(BaseSettings):
    """Settings for page, feed and transcript fetching."""

    model_config = SettingsConfigDict(env_prefix="EXTRACTION_", extra="ignore")

    user_agent: str = "Linkfeed/1.0 (+content ingestion)"
    http_timeout_seconds: float = Field(default=15.0, gt=0)
    transcript_languages: list[str] = Field(default=["ko", "en"])
    video_host: str = "www.youtube.com"


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Linkfeed"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False)
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = Field(default="INFO")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./linkfeed.db",
        description="Async database URL (SQLAlchemy format)",
    )

    # Background ingestion
    ingestion_max_concurrency: int = Field(
        default=4,
        ge=1,
        description="Maximum number of submitted URLs ingested at the same time",
    )

    # Nested groups
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
