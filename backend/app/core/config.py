from pydantic_settings import BaseSettings
from typing import List, Any
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Accept a JSON list or a comma-separated string"""
    if isinstance(v, list):
        return v
    if not isinstance(v, str):
        return []
    if v.startswith('['):
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            pass
    return [origin.strip() for origin in v.split(',') if origin.strip()]


class Settings(BaseSettings):
    """SocietySync settings, read from the environment and .env"""

    # Application
    APP_NAME: str = "SocietySync"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str
    API_VERSION: str = "v1"
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # Database (pool options apply to PostgreSQL only)
    DATABASE_URL: str
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 1800

    # Access tokens
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    BCRYPT_ROUNDS: int = 10

    # Email verification before registration
    OTP_LENGTH: int = 6
    OTP_EXPIRE_MINUTES: int = 10
    OTP_MAX_GENERATION_ATTEMPTS: int = 10

    # Invites; CLIENT_URL is where invite links point
    CLIENT_URL: str = "http://localhost:5173"
    INVITE_LINK_EXPIRE_DAYS: int = 30
    INVITE_EMAIL_EXPIRE_DAYS: int = 7

    # Outgoing mail (SMTP). Empty credentials disable delivery.
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = "noreply@societysync.app"
    EMAIL_FROM_NAME: str = "SocietySync"

    # CORS, comma-separated or JSON list
    CORS_ORIGINS_STR: str = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # Rate limiting (slowapi); memory:// keeps counters per process
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()


_PLACEHOLDER_SECRETS = {"", "CHANGE_ME", "your-secret-key"}


def missing_critical_settings() -> List[str]:
    """Names of required settings that are empty or still placeholders"""
    return [
        name for name in ("DATABASE_URL", "SECRET_KEY", "JWT_SECRET_KEY")
        if (getattr(settings, name) or "") in _PLACEHOLDER_SECRETS
    ]
