"""
MT5 CRM Backend - Authentication Service

Register, login, token verification, password change and logout.
Passwords are bcrypt-hashed; sessions are stateless HS256 bearer tokens
valid for ACCESS_TOKEN_EXPIRE_MINUTES from issue. Logout puts the token's
jti on the Redis denylist; without Redis it is a no-op.
"""
from datetime import datetime
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from loguru import logger

from mt5crm.core.security import (
    BCRYPT_MAX_PASSWORD_BYTES,
    create_access_token,
    get_password_hash,
    seconds_until_expiry,
    verify_password,
    verify_token,
)
from mt5crm.db.models.user import User, UserRole
from mt5crm.db.redis_client import RedisClient, redis_client
from mt5crm.db.repositories.user import UserRepository
from mt5crm.schemas.user import MIN_PASSWORD_LENGTH, RegisterRequest
from mt5crm.utils.exceptions import (
    InactiveUserError,
    InvalidCredentialsError,
    InvalidTokenError,
    ValidationError,
)


def check_password_strength(password: str, field: str = "password") -> None:
    """Raise ValidationError unless the password is 6 chars to 72 bytes."""
    password = password or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(errors=[{
            "field": field,
            "message": f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        }])
    if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValidationError(errors=[{
            "field": field,
            "message": f"Password cannot exceed {BCRYPT_MAX_PASSWORD_BYTES} bytes",
        }])


class AuthService:
    """Authentication operations on top of the credential store."""

    def __init__(self, user_repo: UserRepository, denylist: Optional[RedisClient] = None):
        self.user_repo = user_repo
        self.denylist = denylist or redis_client

    def issue_token(self, user: User) -> str:
        claims = {"email": user.email, "role": user.role}
        if user.login_id is not None:
            claims["login_id"] = user.login_id
        token, _ = create_access_token(subject=user.id, additional_claims=claims)
        return token

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        role: UserRole = UserRole.USER,
    ) -> tuple[User, str]:
        """
        Create a user and issue its first token.

        Raises:
            ValidationError: Malformed email, short password, empty names
            DuplicateEmailError: Email already registered (any letter case)
        """
        try:
            data = RegisterRequest(
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                phone=phone or None,
            )
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e
        check_password_strength(data.password)

        user = User(
            email=str(data.email),
            hashed_password=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=UserRole(role).value,
        )
        user = await self.user_repo.create(user)
        logger.info(f"User registered: {user.email} (id={user.id})")
        return user, self.issue_token(user)

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """
        Authenticate by email and password.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password (same message)
            InactiveUserError: Correct password but the account is disabled
        """
        user = await self.user_repo.get_by_email(email or "")
        if user is None or not verify_password(password or "", user.hashed_password):
            logger.warning(f"Failed login attempt for {email!r}")
            raise InvalidCredentialsError()

        if not user.is_active:
            raise InactiveUserError()

        user = await self.user_repo.update_last_login(user)
        logger.info(f"User logged in: {user.email} (id={user.id})")
        return user, self.issue_token(user)

    def verify(self, token: str, now: Optional[datetime] = None) -> dict:
        """
        Check signature and expiry of a token.

        Raises:
            InvalidTokenError: Malformed, badly signed, wrong type or expired
        """
        claims = verify_token(token or "", now=now)
        if claims is None:
            logger.warning("Rejected access token")
            raise InvalidTokenError()
        return claims

    async def authenticate(self, token: str) -> User:
        """Resolve a bearer token to its user, honouring the denylist."""
        claims = self.verify(token)
        if await self.denylist.is_token_blacklisted(claims.get("jti")):
            logger.warning(f"Revoked token used for user {claims.get('sub')}")
            raise InvalidTokenError()

        try:
            user = await self.user_repo.get_by_id(int(claims["sub"]))
        except (ValueError, TypeError):
            raise InvalidTokenError()
        if user is None:
            raise InvalidTokenError()
        return user

    async def change_password(
        self,
        token: str,
        current_password: str,
        new_password: str,
    ) -> User:
        """
        Replace the stored hash after checking the current password.

        Raises:
            InvalidTokenError: Token invalid or its user is gone
            InactiveUserError: User has been disabled
            InvalidCredentialsError: Current password does not match
            ValidationError: New password shorter than 6 characters
        """
        user = await self.authenticate(token)
        if not user.is_active:
            raise InactiveUserError()

        if not verify_password(current_password or "", user.hashed_password):
            raise InvalidCredentialsError("Current password is incorrect")

        check_password_strength(new_password, field="newPassword")

        user = await self.user_repo.set_password_hash(user, get_password_hash(new_password))
        logger.info(f"Password changed for user {user.id}")
        return user

    async def logout(self, token: str) -> bool:
        """
        Revoke a token for the rest of its lifetime.

        Returns:
            True when the token went onto the denylist, False without Redis
        """
        claims = self.verify(token)
        revoked = await self.denylist.blacklist_token(
            claims.get("jti", ""),
            user_id=int(claims["sub"]),
            ttl=seconds_until_expiry(claims),
        )
        logger.info(f"User {claims['sub']} logged out (revoked={revoked})")
        return revoked
