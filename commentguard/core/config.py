from functools import lru_cache
from typing import ClassVar

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Required secrets (validated at startup)
    REQUIRED_SECRETS: ClassVar[list[str]] = [
        "supabase_url",
        "supabase_service_role_key",
        "groq_api_key",
    ]

    # Environment (development, staging, production)
    environment: str = "development"

    # App
    app_name: str = "CommentGuard API"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Redis (cache + Celery broker)
    redis_url: str = "redis://localhost:6379"

    # Groq (classification)
    groq_api_key: str = ""
    groq_model: str = "openai/gpt-oss-120b"

    # Jina (embeddings)
    jina_api_key: str = ""
    jina_api_url: str = "https://api.jina.ai/v1/embeddings"
    jina_model: str = "jina-embeddings-v3"

    # Meta Graph API (Instagram + Facebook comment actions)
    graph_api_base_url: str = "https://graph.facebook.com/v24.0"
    platform_timeout_seconds: float = 10.0

    # Autumn (billing / entitlements)
    autumn_secret_key: str = ""
    autumn_api_url: str = "https://api.useautumn.com/v1"

    # PostHog
    posthog_enabled: bool = False
    posthog_api_key: str = ""
    posthog_host: str = "https://us.i.posthog.com"

    # Rate limiting
    rate_limit_enabled: bool = True

    # Comment ingestion queue
    comment_queue_concurrency: int = Field(default=15, ge=1, le=100)

    # Skip platform hide/delete/block calls (local state is left untouched too)
    moderation_test_mode: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @model_validator(mode="after")
    def validate_required_secrets(self) -> "Settings":
        """Validate that all required secrets are set (non-empty)."""
        missing = []
        for secret_name in self.REQUIRED_SECRETS:
            value = getattr(self, secret_name, "")
            if not value or not value.strip():
                missing.append(secret_name.upper())

        if missing:
            raise ValueError(
                f"Missing required secrets: {', '.join(missing)}. "
                "Set these environment variables before starting the application."
            )

        return self

    @model_validator(mode="after")
    def validate_cors_origins_in_production(self) -> "Settings":
        """Validate CORS origins are safe in production."""
        from urllib.parse import urlparse

        if self.environment != "production":
            return self

        unsafe_hostnames = {"localhost", "127.0.0.1", "0.0.0.0"}

        for origin in self.cors_origins:
            if origin == "*":
                raise ValueError(
                    "Wildcard (*) CORS origin is not allowed in production. "
                    "Specify exact origins instead."
                )

            hostname = urlparse(origin).hostname or origin
            if hostname in unsafe_hostnames:
                raise ValueError(
                    f"CORS origin '{origin}' uses hostname '{hostname}' which is not "
                    f"allowed in production. Use HTTPS production URLs instead."
                )

        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
