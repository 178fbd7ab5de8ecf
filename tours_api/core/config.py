# tours_api/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string, or sqlite:// for local runs)
      - JWT_SECRET (symmetric key used to sign session tokens)

    Optional:
      - SMTP_* (outgoing mail; without it welcome/reset emails fail)

    Settings are frozen: they are read once at startup and never mutated.
    """

    PROJECT_NAME: str = "Tours Marketplace API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["development", "production"] = "development"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database
    DATABASE_URL: str

    # Session tokens
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_IN_DAYS: int = 90
    JWT_COOKIE_EXPIRES_IN_DAYS: int = 90

    # Passwords
    BCRYPT_ROUNDS: int = 12
    PASSWORD_RESET_TTL_MINUTES: int = 10

    # Unexpected errors terminate the process (a supervisor restarts it)
    EXIT_ON_UNEXPECTED_ERROR: bool = True

    # Outgoing mail
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "Tours Marketplace"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
