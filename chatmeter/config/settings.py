"""Application settings using Pydantic BaseSettings."""

import os
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_default_db_path() -> str:
    """Get absolute path to default SQLite database."""
    config_dir = os.path.dirname(os.path.abspath(__file__))
    project_dir = os.path.dirname(os.path.dirname(config_dir))
    db_path = os.path.join(project_dir, "data", "chatmeter.db")
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    environment: str = Field(default="development")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: str | None = Field(default=None)
    cors_origins: str = Field(default="http://localhost:3000")

    # Database
    database_url: str = Field(default_factory=_get_default_db_path)
    sqlite_busy_timeout_ms: int = 5000
    seed_defaults: bool = Field(default=True)

    # Providers
    openai_base_url: str = Field(default="https://api.openai.com")
    openai_api_key: str = Field(default="")
    anthropic_base_url: str = Field(default="https://api.anthropic.com")
    anthropic_api_key: str = Field(default="")
    anthropic_max_tokens: int = Field(default=2048)
    openrouter_base_url: str = Field(default="https://openrouter.ai/api")
    openrouter_api_key: str = Field(default="")
    provider_timeout_seconds: int = Field(default=120)

    # Chat pipeline
    chat_history_window: int = Field(default=30)
    memory_fact_limit: int = Field(default=8)
    summary_max_chars: int = Field(default=1500)
    summary_history_lines: int = Field(default=12)
    attachment_text_max_chars: int = Field(default=12000)

    # Streaming
    stream_chunk_size: int = Field(default=20)
    stream_delta_delay_ms: int = Field(default=12)
    stream_queue_size: int = Field(default=32)
    sse_ping_interval_seconds: float = Field(default=10)

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def effective_provider_timeout(self) -> int:
        """Provider timeout, never below ten seconds."""
        return max(10, self.provider_timeout_seconds)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        vv = (v or "").strip().lower()
        if vv not in {"development", "staging", "production", "test"}:
            raise ValueError(
                "ENVIRONMENT must be one of: development, staging, production, test"
            )
        return vv

    @field_validator("stream_chunk_size", "stream_queue_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
