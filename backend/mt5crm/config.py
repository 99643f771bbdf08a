"""
MT5 CRM Backend - Configuration Settings
"""
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # =========================
    # Application Settings
    # =========================
    APP_NAME: str = "MT5 CRM Backend API"
    APP_ENV: str = "development"
    DEBUG: bool = True
    API_PREFIX: str = "/api"

    # =========================
    # Server Configuration
    # =========================
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 3001
    FRONTEND_URL: str = "http://localhost:3000"
    ADMIN_URL: str = "http://localhost:3002"
    CORS_ORIGINS: List[str] = []

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            if not v.strip():
                return []
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def allowed_origins(self) -> List[str]:
        """Frontend and admin origins plus any extra configured ones."""
        origins = [self.FRONTEND_URL, self.ADMIN_URL]
        for origin in self.CORS_ORIGINS:
            if origin not in origins:
                origins.append(origin)
        return origins

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    # =========================
    # Database - PostgreSQL
    # =========================
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "mt5_crm"
    POSTGRES_USER: str = "mt5_crm_user"
    POSTGRES_PASSWORD: str = "dev_password_123"
    # Direct DATABASE_URL from environment (overrides individual settings)
    DATABASE_URL: str = ""

    @property
    def database_url(self) -> str:
        """Get the async database URL."""
        if self.DATABASE_URL:
            url = self.DATABASE_URL
            # Ensure it uses asyncpg driver
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return url
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DATABASE_URL_SYNC(self) -> str:
        """Get the sync database URL for Alembic."""
        url = self.database_url
        if "+asyncpg" in url:
            url = url.replace("postgresql+asyncpg://", "postgresql://", 1)
        elif "+aiosqlite" in url:
            url = url.replace("sqlite+aiosqlite://", "sqlite://", 1)
        return url

    # =========================
    # Redis
    # =========================
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0
    # Direct REDIS_URL from environment (overrides individual settings)
    REDIS_URL: str = ""
    REDIS_ENABLED: bool = True

    @property
    def redis_url(self) -> str:
        """Get the Redis URL."""
        if self.REDIS_URL:
            return self.REDIS_URL
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # =========================
    # JWT Authentication
    # =========================
    JWT_SECRET_KEY: str = "your-jwt-secret-key-change-this"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60
    BCRYPT_ROUNDS: int = 12

    # =========================
    # Rate Limit Settings
    # =========================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    # Only enable behind a reverse proxy that overwrites X-Forwarded-For
    RATE_LIMIT_TRUST_FORWARDED: bool = False

    # =========================
    # MT5 Server
    # =========================
    MT5_SERVER_NAME: str = "MT5-Live-Server"
    MT5_DEFAULT_GROUP: str = "demo\\demoforex"
    MT5_DEFAULT_LEVERAGE: int = 100
    MT5_DEFAULT_DEMO_BALANCE: float = 10000.0
    MT5_DEFAULT_CURRENCY: str = "USD"

    # =========================
    # Logging
    # =========================
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True


# Create global settings instance
settings = Settings()
