"""Application configuration via environment variables."""

from functools import lru_cache
from typing import ClassVar

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    database_url: str = "sqlite+aiosqlite:///./campus_insider.db"
    api_secret_key: str = "change-me"
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    cors_origins: str = "*"
    environment: str = "development"

    # Feed settings
    feed_default_page_size: int = 20
    feed_max_page_size: int = 50
    feed_source_timeout_seconds: float = 5.0
    feed_rate_limit_per_minute: int = 60

    # Access tokens
    access_token_prefix: str = "ci_at_"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    INSECURE_SECRETS: ClassVar[set[str]] = {"change-me", "change-me-in-production", "secret", ""}

    def validate_production(self) -> None:
        """Raise if running in production with an insecure default secret key."""
        if self.environment == "production" and self.api_secret_key in self.INSECURE_SECRETS:
            raise RuntimeError(
                "API_SECRET_KEY must be changed from default in production. "
                'Generate one: python -c "import secrets; print(secrets.token_hex(32))"'
            )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
