"""
MT5 CRM Backend - Test Configuration
Shared fixtures and test configuration.
"""
import os
import sys
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment before any mt5crm import
os.environ["APP_ENV"] = "testing"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_TO_FILE"] = "false"
os.environ["REDIS_ENABLED"] = "false"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mt5crm.core.security import create_access_token, get_password_hash
from mt5crm.db.database import Base, get_db
from mt5crm.db.models import TradingAccount, User, UserRole
from mt5crm.db.redis_client import redis_client


TEST_PASSWORD = "secret1"


# =========================
# Database Fixtures
# =========================

@pytest.fixture
async def db_engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


# =========================
# Redis Mock
# =========================

@pytest.fixture
def mock_redis(monkeypatch):
    """Dict-backed stand-in for the Redis connection of the global client."""
    store = {}

    async def setex(key, ttl, value):
        store[key] = value
        return True

    async def exists(key):
        return 1 if key in store else 0

    async def incr(key):
        store[key] = int(store.get(key, 0)) + 1
        return store[key]

    redis = AsyncMock()
    redis.setex = AsyncMock(side_effect=setex)
    redis.exists = AsyncMock(side_effect=exists)
    redis.incr = AsyncMock(side_effect=incr)
    redis.expire = AsyncMock(return_value=True)
    redis.ping = AsyncMock(return_value=True)
    redis.store = store

    monkeypatch.setattr(redis_client, "_client", redis)
    return redis


# =========================
# API Client
# =========================

@pytest.fixture
async def client(session_maker):
    """HTTP client against the app with the database swapped for the test engine."""
    from mt5crm.main import app

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# =========================
# User Fixtures
# =========================

@pytest.fixture
def sample_user_data() -> dict:
    """Sample registration payload (camelCase, as the frontend sends it)."""
    return {
        "email": "alice@example.com",
        "password": TEST_PASSWORD,
        "firstName": "Alice",
        "lastName": "Smith",
        "phone": "+15551234567",
    }


async def create_user(
    session_maker,
    email: str = "bob@example.com",
    role: UserRole = UserRole.USER,
    password: str = TEST_PASSWORD,
    **fields,
) -> User:
    async with session_maker() as session:
        user = User(
            email=email,
            hashed_password=get_password_hash(password),
            first_name=fields.pop("first_name", "Bob"),
            last_name=fields.pop("last_name", "Jones"),
            role=role.value,
            **fields,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


async def create_account(session_maker, user: User, login: int, **fields) -> TradingAccount:
    async with session_maker() as session:
        account = TradingAccount(
            login=login,
            user_id=user.id,
            name=fields.pop("name", user.full_name),
            email=user.email,
            server="MT5-Test-Server",
            group=fields.pop("group", "demo\\demoforex"),
            leverage=fields.pop("leverage", 100),
            account_type=fields.pop("account_type", "demo"),
            balance=fields.pop("balance", Decimal("1000")),
            equity=fields.pop("equity", Decimal("1000")),
            margin=Decimal("0"),
            free_margin=fields.pop("free_margin", Decimal("1000")),
            margin_level=Decimal("0"),
            **fields,
        )
        session.add(account)
        await session.commit()
        await session.refresh(account)
        return account


def bearer(user: User) -> dict:
    token, _ = create_access_token(
        subject=user.id,
        additional_claims={"email": user.email, "role": user.role},
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def regular_user(session_maker) -> User:
    return await create_user(session_maker, email="bob@example.com")


@pytest.fixture
async def admin_user(session_maker) -> User:
    return await create_user(
        session_maker,
        email="admin@example.com",
        role=UserRole.ADMIN,
        first_name="Ada",
        last_name="Admin",
    )


@pytest.fixture
def user_headers(regular_user) -> dict:
    return bearer(regular_user)


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return bearer(admin_user)


@pytest.fixture
def make_user(session_maker):
    """Factory: insert a user directly into the test database."""
    async def _make(**kwargs) -> User:
        return await create_user(session_maker, **kwargs)
    return _make


@pytest.fixture
def make_account(session_maker):
    """Factory: insert a trading account for a user."""
    async def _make(user: User, login: int, **kwargs) -> TradingAccount:
        return await create_account(session_maker, user, login, **kwargs)
    return _make


@pytest.fixture
def headers_for():
    """Factory: bearer headers for a user."""
    return bearer
