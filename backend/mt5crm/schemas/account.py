"""
MT5 CRM Backend - Trading Account Schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from mt5crm.db.models.trading_account import AccountType
from mt5crm.integrations.mt5.base import LEVERAGE_OPTIONS, BalanceOperationType
from mt5crm.schemas.base import RequestModel, ResponseModel, Money


class AccountCreateRequest(RequestModel):
    """Request a new MT5 account for the current user."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    account_type: AccountType = AccountType.DEMO
    leverage: int = 100
    initial_deposit: Optional[Decimal] = Field(None, ge=0)
    phone: str = ""
    country: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    address: str = ""

    @field_validator("leverage")
    @classmethod
    def check_leverage(cls, v: int) -> int:
        if v not in LEVERAGE_OPTIONS:
            options = ", ".join(str(o) for o in LEVERAGE_OPTIONS)
            raise ValueError(f"Invalid leverage. Must be one of: {options}")
        return v


class BalanceUpdateRequest(RequestModel):
    """Snapshot pushed by an admin. Sign is not constrained."""
    balance: Decimal
    equity: Decimal
    margin: Decimal
    free_margin: Decimal
    margin_level: Decimal


class AdminBalanceOperationRequest(RequestModel):
    """Balance operation an admin runs on an account."""
    type: BalanceOperationType
    amount: Decimal = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=255)


class TradingAccount(ResponseModel):
    """Trading account as exposed to clients (money rounded to cents)."""
    login: int
    user_id: int
    name: str
    email: str
    server: str
    group: str
    leverage: int
    account_type: AccountType
    balance: Money
    equity: Money
    margin: Money
    free_margin: Money
    margin_level: Money
    profit_loss: Money
    profit_loss_percentage: Money
    currency: str
    is_active: bool
    created_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None


class AccountCreated(ResponseModel):
    """Account creation result; MT5 passwords are only shown once."""
    message: str
    account: TradingAccount
    master_password: str
    investor_password: str


class AccountConfig(ResponseModel):
    account_groups: dict[str, str]
    leverage_options: list[int]
    server_name: str


class BalanceOperationResponse(ResponseModel):
    message: str
    result: dict
    account: TradingAccount
