"""Application configuration and settings management.

This module defines the application settings loaded from environment
variables and provides helper functions for accessing cached settings,
email configuration and logging setup.
"""

import logging
from functools import lru_cache
from typing import List

from fastapi_mail import ConnectionConfig
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Attributes:
        DATABASE_URL: Database connection string.
        SECRET_KEY: Secret key used for session token signing. Required.
        ALGORITHM: Algorithm used to encode session tokens.
        ACCESS_TOKEN_EXPIRE_MINUTES: Session token lifetime in minutes.
        BCRYPT_ROUNDS: Cost factor for admin password hashes.
        ALLOWED_ORIGINS: Allowed origins for CORS.
        REDIS_URL: Redis connection URL for login rate limiting.
        RATE_LIMIT_ENABLED: Whether the login throttle is active.
        LOGIN_RATE_LIMIT_TIMES: Login attempts allowed per window.
        LOGIN_RATE_LIMIT_SECONDS: Length of the login throttle window.
        SMTP_FROM_EMAIL: Sender email address for outgoing emails.
        SMTP_USER: SMTP username.
        SMTP_PASSWORD: SMTP password.
        SMTP_PORT: SMTP server port.
        SMTP_HOST: SMTP server host.
        SMTP_STARTTLS: Upgrade the SMTP connection with STARTTLS.
        SMTP_SSL_TLS: Connect to the SMTP server over implicit TLS.
        MAIL_SUPPRESS_SEND: Build messages without handing them to SMTP.
        MAIL_TIMEOUT_SECONDS: Upper bound for a single notification delivery.
        ADMIN_EMAIL: Recipient of new contact request notices.
        SITE_NAME: Shop name used in notification subjects.
        LOG_LEVEL: Root logging level.
    """

    DATABASE_URL: str = "sqlite:///./app.db"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    BCRYPT_ROUNDS: int = 12
    ALLOWED_ORIGINS: List[str] = ["*"]
    REDIS_URL: str = "redis://redis:6379"
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT_TIMES: int = 5
    LOGIN_RATE_LIMIT_SECONDS: int = 60
    SMTP_FROM_EMAIL: str = "noreply@example.com"
    SMTP_USER: str = "user"
    SMTP_PASSWORD: str = "password"
    SMTP_PORT: int = 587
    SMTP_HOST: str = "localhost"
    SMTP_STARTTLS: bool = True
    SMTP_SSL_TLS: bool = False
    MAIL_SUPPRESS_SEND: bool = False
    MAIL_TIMEOUT_SECONDS: float = 10.0
    ADMIN_EMAIL: str | None = None
    SITE_NAME: str = "JBF Sport"
    LOG_LEVEL: str = "INFO"

    class Config:
        """Pydantic configuration for loading environment variables."""

        env_file = ".env"
        extra = "allow"

    @property
    def admin_recipient(self) -> str:
        """Address that receives contact request notices."""
        return self.ADMIN_EMAIL or self.SMTP_FROM_EMAIL


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings.

    The settings object is cached to prevent reloading environment
    variables multiple times during application lifetime. Instantiation
    fails when ``SECRET_KEY`` is not configured, so the application
    refuses to start without a signing secret.
    """

    return Settings()


def get_mail_config() -> ConnectionConfig:
    """Create and return email configuration for FastAPI-Mail.

    Returns:
        ConnectionConfig: Configured email connection settings.
    """

    settings = get_settings()
    return ConnectionConfig(
        MAIL_USERNAME=settings.SMTP_USER,
        MAIL_PASSWORD=settings.SMTP_PASSWORD,
        MAIL_FROM=settings.SMTP_FROM_EMAIL,
        MAIL_FROM_NAME=settings.SITE_NAME,
        MAIL_PORT=settings.SMTP_PORT,
        MAIL_SERVER=settings.SMTP_HOST,
        MAIL_STARTTLS=settings.SMTP_STARTTLS,
        MAIL_SSL_TLS=settings.SMTP_SSL_TLS,
        USE_CREDENTIALS=True,
        SUPPRESS_SEND=settings.MAIL_SUPPRESS_SEND,
        TIMEOUT=int(settings.MAIL_TIMEOUT_SECONDS),
    )


def configure_logging() -> None:
    """Configure the root logger from ``LOG_LEVEL``."""

    logging.basicConfig(
        level=get_settings().LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
