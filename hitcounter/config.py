"""
Configuration and settings for the hit counter service.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional
from urllib.parse import quote, urlsplit, urlunsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def build_upstash_redis_url(raw_host: str | None, password: str | None) -> str:
    """
    Turn an Upstash host/password pair into a Redis URL.

    Returns an empty string when either part is missing. Hosts without a
    scheme are assumed to need TLS.
    """
    if not raw_host or not password:
        return ""
    if not raw_host.startswith(("redis://", "rediss://")):
        raw_host = "rediss://" + raw_host
    try:
        parts = urlsplit(raw_host)
        if not parts.hostname:
            return ""
    except ValueError:
        return ""
    netloc = parts.netloc
    if parts.username is None:
        netloc = f"default:{quote(password, safe='')}@{netloc}"
    return urlunsplit(
        (parts.scheme, netloc, parts.path, parts.query, parts.fragment)
    )


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Durable store (Redis)
    redis_url: Optional[str] = Field(default=None)
    upstash_redis_url: Optional[str] = Field(default=None)
    upstash_redis_password: Optional[str] = Field(default=None)
    redis_key_prefix: str = Field(default="hits:")
    redis_timeout_seconds: float = Field(default=1.5, gt=0)
    redis_connect_timeout_seconds: float = Field(default=2.0, gt=0)
    require_redis: bool = Field(default=False)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Counters
    default_id: str = Field(default="home", min_length=1)
    initial_hit_count: Optional[int] = Field(default=None)
    persist_file: Optional[str] = Field(default=None)

    # HTTP surface
    secret_token: Optional[str] = Field(default=None)
    protect_reads: bool = Field(default=False)
    allowed_origins: str = Field(default="*")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)

    @field_validator("initial_hit_count", mode="before")
    @classmethod
    def _lenient_seed(cls, value):
        # An unusable seed is ignored rather than failing startup.
        if value is None or value == "":
            return None
        try:
            seed = int(str(value).strip())
        except ValueError:
            logger.warning("ignoring unparsable INITIAL_HIT_COUNT=%r", value)
            return None
        if seed < 0:
            logger.warning("ignoring negative INITIAL_HIT_COUNT=%r", value)
            return None
        return seed

    def resolved_redis_url(self) -> str:
        """REDIS_URL if set, otherwise one built from the Upstash variables."""
        if self.use_in_memory_backends:
            return ""
        if self.redis_url:
            return self.redis_url
        return build_upstash_redis_url(
            self.upstash_redis_url, self.upstash_redis_password
        )

    def cors_origins(self) -> list[str]:
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return origins or ["*"]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
