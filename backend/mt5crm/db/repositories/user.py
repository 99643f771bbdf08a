"""
MT5 CRM Backend - User Repository
Credential store: CRUD operations for the User model
"""
from typing import Optional, List

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from mt5crm.db.models.user import User, UserStatus, normalize_email, utcnow
from mt5crm.utils.exceptions import DuplicateEmailError, ValidationError


class UserRepository:
    """Repository for User CRUD operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """
        Get user by ID.

        Args:
            user_id: The user's ID

        Returns:
            User object if found, None otherwise
        """
        result = await self.session.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email address, ignoring case and surrounding whitespace.

        Args:
            email: The user's email address

        Returns:
            User object if found, None otherwise
        """
        result = await self.session.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def get_by_login_id(self, login_id: int) -> Optional[User]:
        """Get the user linked to an MT5 login."""
        result = await self.session.execute(
            select(User).where(User.login_id == login_id)
        )
        return result.scalar_one_or_none()

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100
    ) -> List[User]:
        """
        Get all users with pagination, newest first.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of User objects
        """
        result = await self.session.execute(
            select(User).order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(User.id)))
        return result.scalar_one()

    async def count_active(self) -> int:
        result = await self.session.execute(
            select(func.count(User.id)).where(User.status == UserStatus.ACTIVE.value)
        )
        return result.scalar_one()

    async def create(self, user: User) -> User:
        """
        Insert a new user.

        Args:
            user: Unsaved User carrying an already hashed password

        Returns:
            Created User object

        Raises:
            ValidationError: If any field constraint is violated
            DuplicateEmailError: If the email is already registered
        """
        user.normalize()
        self._check(user)

        if await self.get_by_email(user.email):
            raise DuplicateEmailError()

        self.session.add(user)
        await self._commit()
        await self.session.refresh(user)
        return user

    async def save(self, user: User) -> User:
        """
        Persist mutations of an existing user after re-validating it.

        Raises:
            ValidationError: Listing every violated field
        """
        user.normalize()
        self._check(user)
        user.updated_at = utcnow()
        await self._commit()
        await self.session.refresh(user)
        return user

    async def update_last_login(self, user: User) -> User:
        """
        Update user's last login timestamp.

        Args:
            user: The user to update

        Returns:
            Updated User object
        """
        user.last_login_at = utcnow()
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def set_password_hash(self, user: User, hashed_password: str) -> User:
        user.hashed_password = hashed_password
        return await self.save(user)

    async def set_status(self, user: User, status: UserStatus) -> User:
        """Disable or re-enable a user. Users are never deleted."""
        user.status = UserStatus(status).value
        return await self.save(user)

    async def link_login(self, user: User, login: int) -> User:
        """Link an MT5 login to the user unless one is already linked."""
        if user.login_id is None:
            user.login_id = login
            return await self.save(user)
        return user

    def _check(self, user: User) -> None:
        errors = user.validate()
        if errors:
            raise ValidationError(errors=errors)

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            message = str(e.orig).lower()
            if "email" in message:
                raise DuplicateEmailError() from e
            logger.error(f"User integrity error: {e.orig}")
            raise ValidationError(
                errors=[{"field": "login_id", "message": "MT5 login already linked to another user"}]
            ) from e
