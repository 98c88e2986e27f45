"""
Configuration settings for the application
"""
import re
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

API_PREFIX = "/api/v1"

_DURATION_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}
_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$", re.IGNORECASE)


def parse_duration(value: str) -> timedelta:
    """
    Parse a token lifetime such as "3600", "30m", "12h" or "1d".

    A bare number is read as seconds.
    """
    match = _DURATION_PATTERN.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    unit = unit.lower() or "s"
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Infrastructure configuration
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    # Core authentication and security
    jwt_secret_key: Optional[str] = Field(default=None, alias="JWT_SECRET_KEY")
    jwt_expires_in: str = Field(default="1d", alias="JWT_EXPIRES_IN")

    # Server
    port: int = Field(default=5500, alias="PORT")
    env: str = Field(default="development", alias="ENV")

    # Frontend configuration
    frontend_url: Optional[str] = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Requests per minute per client IP, 0 disables the limiter
    rate_limit_per_minute: int = Field(default=30, ge=0, alias="RATE_LIMIT_PER_MINUTE")

    upcoming_renewal_days: int = Field(default=7, ge=1, alias="UPCOMING_RENEWAL_DAYS")

    @field_validator("jwt_expires_in")
    @classmethod
    def validate_jwt_expires_in(cls, value: str) -> str:
        parse_duration(value)
        return value.strip()

    @property
    def is_production(self) -> bool:
        return self.env.strip().lower() == "production"

    @property
    def token_lifetime(self) -> timedelta:
        return parse_duration(self.jwt_expires_in)


@lru_cache
def get_settings() -> Settings:
    """Return the settings instance built once at process start."""
    return Settings()


settings = get_settings()
