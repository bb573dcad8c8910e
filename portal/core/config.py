import json
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "Academy Portal"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database Settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./portal.db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Authentication Settings
    SECRET_KEY: str = Field(..., min_length=16)
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12
    TOKEN_ISSUER: str = "academy_portal"

    # CORS Settings
    ALLOWED_ORIGINS: Union[List[str], str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )

    # Rate Limiting Settings
    LOGIN_RATE_LIMIT: int = 10
    LOGIN_RATE_WINDOW_SECONDS: int = 60
    CONTACT_RATE_LIMIT: int = 5
    CONTACT_RATE_WINDOW_SECONDS: int = 60

    # Email Settings
    MAIL_ENABLED: bool = False
    MAIL_USERNAME: Optional[str] = None
    MAIL_PASSWORD: Optional[str] = None
    MAIL_FROM: str = "noreply@example.com"
    MAIL_FROM_NAME: str = "Academy Portal"
    MAIL_SERVER: str = "localhost"
    MAIL_PORT: int = 587
    MAIL_STARTTLS: bool = True
    MAIL_SSL_TLS: bool = False
    MAIL_TIMEOUT: int = 10

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # Platform Admin Settings
    SYSTEM_ORGANIZATION_NAME: str = "System"
    SYSTEM_ORGANIZATION_SLUG: str = "system"
    SUPERUSER_EMAIL: Optional[str] = None
    SUPERUSER_PASSWORD: Optional[str] = None

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True
    )


# Initialize settings
settings = Settings()


# Helper Functions
def get_token_expires_delta(minutes: Optional[int] = None) -> timedelta:
    if minutes is None:
        minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    return timedelta(minutes=minutes)


def get_database_url() -> str:
    return settings.DATABASE_URL


def get_jwt_settings() -> Dict[str, Any]:
    return {
        "secret_key": settings.SECRET_KEY,
        "algorithm": settings.ALGORITHM,
        "access_token_expire_minutes": settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        "token_issuer": settings.TOKEN_ISSUER
    }


def get_logging_config() -> Dict[str, Optional[str]]:
    return {
        "log_level": settings.LOG_LEVEL,
        "log_dir": settings.LOG_DIR
    }


def get_email_settings() -> Dict[str, Any]:
    return {
        "enabled": settings.MAIL_ENABLED,
        "server": settings.MAIL_SERVER,
        "port": settings.MAIL_PORT,
        "username": settings.MAIL_USERNAME,
        "password": settings.MAIL_PASSWORD,
        "from_email": settings.MAIL_FROM,
        "from_name": settings.MAIL_FROM_NAME,
        "starttls": settings.MAIL_STARTTLS,
        "ssl_tls": settings.MAIL_SSL_TLS,
        "timeout": settings.MAIL_TIMEOUT
    }
