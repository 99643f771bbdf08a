"""
MT5 CRM Backend - Authentication Endpoints
"""
from fastapi import APIRouter, Depends, status

from mt5crm.db.models.user import User
from mt5crm.dependencies import (
    get_auth_service,
    get_bearer_token,
    get_current_active_user,
)
from mt5crm.schemas.base import Message
from mt5crm.schemas.user import (
    AuthResponse,
    LoginRequest,
    PasswordChange,
    ProfileResponse,
    RegisterRequest,
    User as UserSchema,
)
from mt5crm.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="Create a new user account and return user data with an access token."
)
async def register(
    user_data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """
    Register a new user.

    - **email**: Valid email address (unique, case-insensitive)
    - **password**: Password (min 6 chars)
    - **firstName** / **lastName**: 1-50 chars
    - **phone**: Optional phone number
    """
    user, token = await auth_service.register(
        email=user_data.email,
        password=user_data.password,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        phone=user_data.phone,
    )
    return AuthResponse(
        message="User registered successfully",
        token=token,
        user=UserSchema.model_validate(user),
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login and get access token",
    description="Authenticate with email and password to receive a bearer token."
)
async def login(
    credentials: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    user, token = await auth_service.login(credentials.email, credentials.password)
    return AuthResponse(
        message="Login successful",
        token=token,
        user=UserSchema.model_validate(user),
    )


@router.get(
    "/profile",
    response_model=ProfileResponse,
    summary="Get current user profile",
)
async def get_profile(
    current_user: User = Depends(get_current_active_user),
) -> ProfileResponse:
    return ProfileResponse(user=UserSchema.model_validate(current_user))


@router.post(
    "/change-password",
    response_model=Message,
    summary="Change password",
)
async def change_password(
    password_data: PasswordChange,
    token: str = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> Message:
    await auth_service.change_password(
        token,
        current_password=password_data.current_password,
        new_password=password_data.new_password,
    )
    return Message(message="Password changed successfully")


@router.post(
    "/logout",
    response_model=Message,
    summary="Logout",
    description="Revoke the current access token."
)
async def logout(
    token: str = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> Message:
    await auth_service.logout(token)
    return Message(message="Successfully logged out")
