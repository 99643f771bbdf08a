"""
MT5 CRM Backend - Pydantic Schemas
"""
from mt5crm.schemas.base import (
    RequestModel,
    ResponseModel,
    Money,
    Message,
    FieldError,
    ErrorResponse,
)
from mt5crm.schemas.user import (
    RegisterRequest,
    LoginRequest,
    PasswordChange,
    AdminCreateUserRequest,
    User,
    AuthResponse,
    ProfileResponse,
)
from mt5crm.schemas.account import (
    AccountCreateRequest,
    BalanceUpdateRequest,
    AdminBalanceOperationRequest,
    TradingAccount,
    AccountCreated,
    AccountConfig,
    BalanceOperationResponse,
)
from mt5crm.schemas.balance import (
    DepositRequest,
    WithdrawRequest,
    CreateIntentRequest,
    ConfirmPaymentRequest,
)

__all__ = [
    # Base
    "RequestModel",
    "ResponseModel",
    "Money",
    "Message",
    "FieldError",
    "ErrorResponse",
    # User schemas
    "RegisterRequest",
    "LoginRequest",
    "PasswordChange",
    "AdminCreateUserRequest",
    "User",
    "AuthResponse",
    "ProfileResponse",
    # Account schemas
    "AccountCreateRequest",
    "BalanceUpdateRequest",
    "AdminBalanceOperationRequest",
    "TradingAccount",
    "AccountCreated",
    "AccountConfig",
    "BalanceOperationResponse",
    # Balance / payment schemas
    "DepositRequest",
    "WithdrawRequest",
    "CreateIntentRequest",
    "ConfirmPaymentRequest",
]
