"""
MT5 CRM Backend - Dependencies
Dependency injection for FastAPI endpoints
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from mt5crm.db.database import get_db
from mt5crm.db.models.user import User
from mt5crm.db.redis_client import redis_client
from mt5crm.db.repositories import TradingAccountRepository, UserRepository
from mt5crm.integrations.mt5 import MockMT5Gateway, MT5Gateway
from mt5crm.integrations.payments import MockPaymentGateway, PaymentGateway
from mt5crm.services import AccountService, AuthService
from mt5crm.utils.exceptions import (
    InactiveUserError,
    InsufficientPermissionsError,
    InvalidTokenError,
)


# Bearer scheme; missing headers are reported by get_bearer_token as 401
bearer_scheme = HTTPBearer(auto_error=False)

# Integration gateways live for the whole process
mt5_gateway: MT5Gateway = MockMT5Gateway()
payment_gateway: PaymentGateway = MockPaymentGateway()


async def get_user_repository(
    db: AsyncSession = Depends(get_db)
) -> UserRepository:
    """
    User repository dependency.

    Args:
        db: Database session

    Returns:
        UserRepository instance
    """
    return UserRepository(db)


async def get_account_repository(
    db: AsyncSession = Depends(get_db)
) -> TradingAccountRepository:
    return TradingAccountRepository(db)


def get_mt5_gateway() -> MT5Gateway:
    return mt5_gateway


def get_payment_gateway() -> PaymentGateway:
    return payment_gateway


async def get_auth_service(
    user_repo: UserRepository = Depends(get_user_repository)
) -> AuthService:
    return AuthService(user_repo, denylist=redis_client)


async def get_account_service(
    account_repo: TradingAccountRepository = Depends(get_account_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    gateway: MT5Gateway = Depends(get_mt5_gateway),
) -> AccountService:
    return AccountService(account_repo, user_repo, gateway)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Raw bearer token from the Authorization header.

    Raises:
        InvalidTokenError: If the header is missing or not a bearer token
    """
    if credentials is None or not credentials.credentials:
        raise InvalidTokenError("Access token required")
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Get current authenticated user from JWT token.

    Raises:
        InvalidTokenError: If token is invalid, revoked or its user is gone
    """
    return await auth_service.authenticate(token)


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get current active user.

    Raises:
        InactiveUserError: If the user has been disabled
    """
    if not current_user.is_active:
        raise InactiveUserError()
    return current_user


async def get_current_admin(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Get current admin user.

    Raises:
        InsufficientPermissionsError: If the user is not an admin
    """
    if not current_user.is_admin:
        raise InsufficientPermissionsError("Admin access required")
    return current_user
