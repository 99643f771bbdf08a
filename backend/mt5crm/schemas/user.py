"""
MT5 CRM Backend - Pydantic Schemas
User and Authentication Schemas
"""
from datetime import datetime
from typing import Annotated, Optional

from pydantic import EmailStr, Field, StringConstraints, ConfigDict

from mt5crm.db.models.user import UserRole, UserStatus
from mt5crm.schemas.base import RequestModel, ResponseModel


MIN_PASSWORD_LENGTH = 6

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
Phone = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^\+?[1-9]\d{0,15}$")]
Password = Annotated[str, Field(min_length=MIN_PASSWORD_LENGTH, max_length=72)]


# =========================
# Request Schemas
# =========================

class RegisterRequest(RequestModel):
    """Schema for registering a new user."""
    email: EmailStr
    password: Password
    first_name: Name
    last_name: Name
    phone: Optional[Phone] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "alice@example.com",
                "password": "secret1",
                "firstName": "Alice",
                "lastName": "Smith",
                "phone": "+15551234567"
            }
        }
    )


class LoginRequest(RequestModel):
    """Schema for user login."""
    email: EmailStr
    password: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "alice@example.com",
                "password": "secret1"
            }
        }
    )


class PasswordChange(RequestModel):
    """Schema for changing the current user's password."""
    current_password: str = Field(..., min_length=1)
    new_password: Password


class AdminCreateUserRequest(RegisterRequest):
    """Schema for an admin creating a user, optionally with an MT5 account."""
    role: UserRole = UserRole.USER
    create_mt5_account: bool = False
    mt5_group: Optional[str] = None
    mt5_leverage: int = Field(100, ge=1, le=1000)
    initial_balance: float = Field(0, ge=0)


# =========================
# Response Schemas
# =========================

class User(ResponseModel):
    """Schema for User response (never carries the password hash)."""
    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    role: UserRole
    status: UserStatus
    login_id: Optional[int] = None
    mt5_accounts: list[int] = []
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class AuthResponse(ResponseModel):
    """Register / login response."""
    message: str
    token: str
    token_type: str = "bearer"
    user: User


class ProfileResponse(ResponseModel):
    user: User

