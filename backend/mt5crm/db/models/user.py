"""
MT5 CRM Backend - User Model
"""
import enum
import re
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, BigInteger, String, DateTime
from sqlalchemy.orm import relationship

from mt5crm.db.database import Base


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]{2,}$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
NAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 255


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserRole(str, enum.Enum):
    """User roles."""
    USER = "user"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    """User account status."""
    ACTIVE = "active"
    DISABLED = "disabled"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class User(Base):
    """Registered CRM user."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(EMAIL_MAX_LENGTH), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Profile
    first_name = Column(String(NAME_MAX_LENGTH), nullable=False)
    last_name = Column(String(NAME_MAX_LENGTH), nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(String(20), default=UserRole.USER.value, nullable=False, index=True)
    status = Column(String(20), default=UserStatus.ACTIVE.value, nullable=False)

    # Linked MT5 login
    login_id = Column(BigInteger, unique=True, nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login_at = Column(DateTime, nullable=True)

    # Relationships
    trading_accounts = relationship(
        "TradingAccount",
        back_populates="user",
        order_by="desc(TradingAccount.created_at)",
        lazy="selectin",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def mt5_accounts(self) -> list[int]:
        return [account.login for account in self.trading_accounts]

    def validate(self) -> list[dict]:
        """
        Check every field constraint.

        Returns:
            List of {"field", "message"} dicts, empty when the record is valid
        """
        errors = []

        email = self.email or ""
        if not email:
            errors.append({"field": "email", "message": "Email is required"})
        elif len(email) > EMAIL_MAX_LENGTH or not EMAIL_PATTERN.match(email):
            errors.append({"field": "email", "message": "Please enter a valid email"})

        if not self.hashed_password:
            errors.append({"field": "password", "message": "Password is required"})

        for field, label in (("first_name", "First name"), ("last_name", "Last name")):
            value = (getattr(self, field) or "").strip()
            if not value:
                errors.append({"field": field, "message": f"{label} is required"})
            elif len(value) > NAME_MAX_LENGTH:
                errors.append({
                    "field": field,
                    "message": f"{label} cannot exceed {NAME_MAX_LENGTH} characters",
                })

        if self.phone and not PHONE_PATTERN.match(self.phone):
            errors.append({"field": "phone", "message": "Please enter a valid phone number"})

        if self.role is not None and self.role not in {r.value for r in UserRole}:
            errors.append({"field": "role", "message": f"Invalid role: {self.role}"})

        if self.status is not None and self.status not in {s.value for s in UserStatus}:
            errors.append({"field": "status", "message": f"Invalid status: {self.status}"})

        return errors

    def normalize(self) -> None:
        """Apply the canonical form (lower-cased email, trimmed names)."""
        self.email = normalize_email(self.email)
        if self.first_name:
            self.first_name = self.first_name.strip()
        if self.last_name:
            self.last_name = self.last_name.strip()
        if self.phone is not None:
            self.phone = self.phone.strip() or None

    def __repr__(self):
        return f"<User {self.email}>"
