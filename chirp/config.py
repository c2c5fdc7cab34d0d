"""Configuration settings for Chirp."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

BCRYPT_MIN_ROUNDS = 4


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./chirp.db")

    # JWT session tokens and signed cookies
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", "480"))
    REMEMBER_COOKIE_DAYS: int = int(os.getenv("REMEMBER_COOKIE_DAYS", "7300"))

    # User limits
    USER_MAX_LENGTH_NAME: int = int(os.getenv("USER_MAX_LENGTH_NAME", "50"))
    USER_MAX_LENGTH_EMAIL: int = int(os.getenv("USER_MAX_LENGTH_EMAIL", "255"))
    USER_MAX_LENGTH_PASSWORD: int = int(os.getenv("USER_MAX_LENGTH_PASSWORD", "72"))
    MICROPOST_MAX_LENGTH: int = int(os.getenv("MICROPOST_MAX_LENGTH", "140"))
    PASSWORD_RESET_EXPIRE_HOURS: int = int(os.getenv("PASSWORD_RESET_EXPIRE_HOURS", "2"))

    # Hashing
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    BCRYPT_MIN_COST: bool = _env_bool("BCRYPT_MIN_COST")

    # Mail
    MAIL_BACKEND: str = os.getenv("MAIL_BACKEND", "console")
    MAIL_FROM: str = os.getenv("MAIL_FROM", "noreply@chirp.local")
    SMTP_HOST: str = os.getenv("SMTP_HOST", "localhost")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "25"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_USE_TLS: bool = _env_bool("SMTP_USE_TLS")
    APP_BASE_URL: str = os.getenv("APP_BASE_URL", "http://localhost:8000")

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = _env_bool("DEBUG")

    def __init__(self) -> None:
        self._generated_secret = not self.JWT_SECRET_KEY
        if self._generated_secret:
            self.JWT_SECRET_KEY = secrets.token_urlsafe(32)

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def bcrypt_rounds(self) -> int:
        """Work factor for new digests. The reduced cost never applies in production."""
        if self.BCRYPT_MIN_COST and not self.is_production:
            return BCRYPT_MIN_ROUNDS
        return self.BCRYPT_ROUNDS

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self._generated_secret:
            errors.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if self.BCRYPT_MIN_COST and self.is_production:
            errors.append("BCRYPT_MIN_COST is ignored in production")
        if self.MAIL_BACKEND not in ("console", "smtp"):
            errors.append(f"Unknown MAIL_BACKEND '{self.MAIL_BACKEND}' - falling back to console")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
