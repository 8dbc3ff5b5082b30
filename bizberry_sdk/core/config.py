"""SDK configuration."""
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root (2 levels up from this file: bizberry_sdk/core/config.py)
PROJECT_ROOT = Path(__file__).parent.parent.parent
ENV_FILE = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """SDK settings, read from the environment or a .env file."""

    # Backend
    BIZBERRY_URL: str = ""
    BIZBERRY_TENANT: str = ""
    BIZBERRY_TIMEOUT: float = 30.0
    BIZBERRY_VERIFY_SSL: bool = True

    # Token lifecycle
    BIZBERRY_TOKEN_SAFETY_INTERVAL_MS: int = 30000
    BIZBERRY_REFRESH_INTERVAL_SECONDS: float = 20.0
    BIZBERRY_TOKEN_STORE: str = "memory"  # memory or redis

    # Relation expansion
    BIZBERRY_RELATION_MAX_DEPTH: int = 19

    # Redis (only used by the redis token store)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY_PREFIX: str = "bizberry-sdk"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else ".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator('BIZBERRY_URL')
    @classmethod
    def validate_backend_url(cls, v: str) -> str:
        """Validate backend URL format and strip the trailing slash."""
        if v and not v.startswith(('http://', 'https://')):
            raise ValueError('BIZBERRY_URL must start with http:// or https://')
        if v:
            try:
                urlparse(v)
            except Exception as e:
                raise ValueError(f'Invalid BIZBERRY_URL format: {e}')
        return v.rstrip('/')

    @field_validator('REDIS_URL')
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v.startswith(('redis://', 'rediss://')):
            raise ValueError('REDIS_URL must start with redis:// or rediss://')
        return v

    @field_validator(
        'BIZBERRY_TIMEOUT',
        'BIZBERRY_TOKEN_SAFETY_INTERVAL_MS',
        'BIZBERRY_REFRESH_INTERVAL_SECONDS',
        'BIZBERRY_RELATION_MAX_DEPTH',
    )
    @classmethod
    def validate_positive(cls, v):
        """Timeouts, intervals and depth limits must be positive."""
        if v <= 0:
            raise ValueError('Value must be greater than 0')
        return v

    @field_validator('BIZBERRY_TOKEN_STORE')
    @classmethod
    def validate_token_store(cls, v: str) -> str:
        """Only the memory and redis token stores exist."""
        v = v.lower()
        if v not in ('memory', 'redis'):
            raise ValueError('BIZBERRY_TOKEN_STORE must be "memory" or "redis"')
        return v


settings = Settings()
