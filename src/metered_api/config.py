"""Application configuration and credit policy settings."""

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class StorageBackend(str, Enum):
    """Where credentials, items and usage logs are kept."""

    MEMORY = "memory"
    REDIS = "redis"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_env: Environment = Environment.DEVELOPMENT
    api_prefix: str = "/v1"
    debug: bool = False

    # Storage
    storage_backend: StorageBackend = StorageBackend.MEMORY
    storage_timeout_seconds: float = 2.0

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 100

    # Credits
    initial_credits: int = Field(default=4, ge=0)
    recharge_amount: int = Field(default=4, gt=0)

    # API keys
    api_key_prefix: str = "clapi_"
    admin_api_key: str | None = None

    # Usage logging
    usage_logging_enabled: bool = True

    model_config = {"env_prefix": "", "case_sensitive": False}

    @property
    def expose_error_details(self) -> bool:
        """Whether internal error text may be returned to clients."""
        return self.debug and self.api_env == Environment.DEVELOPMENT


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
