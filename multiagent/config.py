"""Configuration management for the multi-agent service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple

_DEFAULT_ORIGINS = "http://localhost:3000,http://localhost:8080"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RateLimitConfig:
    """Sliding-window request limits applied per client address."""

    enabled: bool = True
    max_requests: int = 100
    window_seconds: int = 15 * 60


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables."""

    host: str = "0.0.0.0"
    port: int = 3003
    environment: str = "development"
    log_level: str = "info"
    log_format: str = "console"
    allowed_origins: Tuple[str, ...] = tuple(_DEFAULT_ORIGINS.split(","))
    max_concurrent_workflows: int = 10
    retry_backoff_ms: int = 100
    max_body_bytes: int = 1024 * 1024
    rate_limit: RateLimitConfig = RateLimitConfig()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables."""
        environment = os.getenv("ENVIRONMENT") or os.getenv("NODE_ENV", "development")
        origins = os.getenv("ALLOWED_ORIGINS", _DEFAULT_ORIGINS)

        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3003")),
            environment=environment,
            log_level=os.getenv("LOG_LEVEL", "info"),
            log_format=os.getenv(
                "LOG_FORMAT", "json" if environment == "production" else "console"
            ),
            allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            max_concurrent_workflows=int(os.getenv("MAX_CONCURRENT_WORKFLOWS", "10")),
            retry_backoff_ms=int(os.getenv("RETRY_BACKOFF_MS", "100")),
            max_body_bytes=int(os.getenv("MAX_BODY_BYTES", str(1024 * 1024))),
            rate_limit=RateLimitConfig(
                enabled=_env_bool("RATE_LIMIT_ENABLED", True),
                max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100")),
                window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900")),
            ),
        )
