"""Application configuration."""
from collections import Counter
from datetime import timedelta
from functools import lru_cache
import math
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Tollgate"
    env: Literal["local", "dev", "prod"] = "local"
    debug: bool = False
    log_level: str | None = None

    # HTTP server
    host: str = "127.0.0.1"
    port: int = 8080
    idle_timeout_seconds: int = 60
    shutdown_timeout_seconds: int = 5

    # Database
    database_url: str = "sqlite:///./data/tollgate.db"
    session_store_backend: Literal["sql", "memory"] = "sql"
    store_timeout_seconds: float = 5.0

    # Auth
    secret_key: str
    algorithm: str = "HS512"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    bcrypt_rounds: int = 12

    # Cookies
    access_cookie_name: str = "access_token"
    refresh_cookie_name: str = "refresh_token"
    cookie_path: str = "/"
    cookie_samesite: str = "lax"
    cookie_secure: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.access_token_expire_minutes)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(days=self.refresh_token_expire_days)

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, value: str) -> str:
        """Fail closed if SECRET_KEY is weak or placeholder quality."""
        if not value:
            raise ValueError("SECRET_KEY must be set.")

        if len(value) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")

        weak_values = {"changeme", "changeme-in-production", "secret", "password", "test"}
        lowered = value.lower()
        if lowered in weak_values or "changeme" in lowered:
            raise ValueError("SECRET_KEY must not be a placeholder value.")

        counts = Counter(value)
        entropy_per_char = -sum((count / len(value)) * math.log2(count / len(value)) for count in counts.values())
        estimated_entropy_bits = entropy_per_char * len(value)
        if estimated_entropy_bits < 100:
            raise ValueError("SECRET_KEY entropy is too low; use a cryptographically random value.")

        return value

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
