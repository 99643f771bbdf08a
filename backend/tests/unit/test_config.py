"""
Unit Tests - Configuration
Tests for application settings and config.
"""
from mt5crm.config import Settings


class TestSettings:
    """Tests for Settings configuration class."""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.APP_NAME == "MT5 CRM Backend API"
        assert settings.API_PREFIX == "/api"
        assert settings.BACKEND_PORT == 3001
        assert settings.JWT_ALGORITHM == "HS256"
        assert settings.ACCESS_TOKEN_EXPIRE_MINUTES == 24 * 60

    def test_rate_limit_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.RATE_LIMIT_MAX_REQUESTS == 100
        assert settings.RATE_LIMIT_WINDOW_SECONDS == 15 * 60

    def test_environment_from_env(self):
        """conftest switches the environment to testing."""
        settings = Settings()
        assert settings.APP_ENV == "testing"
        assert settings.is_production is False

    def test_production_flag(self):
        assert Settings(APP_ENV="production").is_production is True

    def test_allowed_origins(self):
        settings = Settings(
            FRONTEND_URL="https://app.example.com",
            ADMIN_URL="https://admin.example.com",
            CORS_ORIGINS="https://app.example.com, https://partners.example.com",
        )
        assert settings.allowed_origins == [
            "https://app.example.com",
            "https://admin.example.com",
            "https://partners.example.com",
        ]

    def test_cors_origins_json(self):
        settings = Settings(CORS_ORIGINS='["http://a.test", "http://b.test"]')
        assert settings.CORS_ORIGINS == ["http://a.test", "http://b.test"]

    def test_database_url_from_parts(self):
        settings = Settings(
            DATABASE_URL="",
            POSTGRES_HOST="db",
            POSTGRES_PORT=5433,
            POSTGRES_DB="crm",
            POSTGRES_USER="crm_user",
            POSTGRES_PASSWORD="pw",
        )
        assert settings.database_url == "postgresql+asyncpg://crm_user:pw@db:5433/crm"
        assert settings.DATABASE_URL_SYNC == "postgresql://crm_user:pw@db:5433/crm"

    def test_database_url_forces_asyncpg(self):
        settings = Settings(DATABASE_URL="postgresql://u:p@h/d")
        assert settings.database_url == "postgresql+asyncpg://u:p@h/d"

    def test_sqlite_sync_url(self):
        settings = Settings(DATABASE_URL="sqlite+aiosqlite:///./crm.db")
        assert settings.DATABASE_URL_SYNC == "sqlite:///./crm.db"

    def test_redis_url(self):
        settings = Settings(REDIS_URL="", REDIS_HOST="cache", REDIS_PORT=6380, REDIS_DB=2, REDIS_PASSWORD="")
        assert settings.redis_url == "redis://cache:6380/2"
        settings = Settings(REDIS_URL="", REDIS_PASSWORD="pw", REDIS_HOST="cache")
        assert settings.redis_url.startswith("redis://:pw@cache:")
