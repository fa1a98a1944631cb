from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from sessionauth.domain.identity.policy import SessionPolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Security
    secret_key: str
    # Older signing keys still accepted for verification during a rotation window.
    # Use JSON array in .env: PREVIOUS_SECRET_KEYS=["old-secret"]
    previous_secret_keys: list[str] = []
    jwt_algorithm: str = "HS256"

    # Session policy
    session_ttl_seconds: int = 60 * 60 * 24
    max_concurrent_sessions: int | None = None
    operation_timeout_seconds: float = 5.0

    # Storage
    store_backend: Literal["memory", "database"] = "memory"
    database_url: str = "postgresql+asyncpg://localhost/sessionauth"

    # Throttling, per client IP
    register_rate_limit: int = 5
    login_rate_limit: int = 20
    rate_limit_window_seconds: int = 300

    # App
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    app_name: str = "SessionAuth"
    app_version: str = "0.1.0"

    # CORS — use JSON array in .env: CORS_ORIGINS=["http://localhost:5173"]
    cors_origins: list[str] = ["http://localhost:5173"]

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def session_policy(self) -> SessionPolicy:
        return SessionPolicy(
            session_ttl=timedelta(seconds=self.session_ttl_seconds),
            max_concurrent_sessions=self.max_concurrent_sessions,
            operation_timeout=self.operation_timeout_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
