"""
MT5 CRM Backend - Trading Account Endpoints
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from mt5crm.config import settings
from mt5crm.db.models.user import User
from mt5crm.db.repositories.trading_account import TradingAccountRepository
from mt5crm.dependencies import (
    get_account_repository,
    get_account_service,
    get_current_active_user,
)
from mt5crm.integrations.mt5.base import ACCOUNT_GROUPS, LEVERAGE_OPTIONS
from mt5crm.schemas.account import (
    AccountConfig,
    AccountCreated,
    AccountCreateRequest,
    TradingAccount as TradingAccountSchema,
)
from mt5crm.services.account_service import AccountService

router = APIRouter()


@router.get(
    "/config",
    response_model=AccountConfig,
    summary="Account groups and leverage options",
)
async def get_config() -> AccountConfig:
    return AccountConfig(
        account_groups=ACCOUNT_GROUPS,
        leverage_options=LEVERAGE_OPTIONS,
        server_name=settings.MT5_SERVER_NAME,
    )


@router.get(
    "",
    response_model=list[TradingAccountSchema],
    summary="List my trading accounts",
)
async def list_accounts(
    current_user: User = Depends(get_current_active_user),
    account_repo: TradingAccountRepository = Depends(get_account_repository),
) -> list[TradingAccountSchema]:
    accounts = await account_repo.get_active_by_user(current_user.id)
    return [TradingAccountSchema.model_validate(a) for a in accounts]


@router.post(
    "",
    response_model=AccountCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Open a new MT5 account",
)
async def create_account(
    request: AccountCreateRequest,
    current_user: User = Depends(get_current_active_user),
    account_service: AccountService = Depends(get_account_service),
) -> AccountCreated:
    """
    Open an MT5 account for the current user.

    The master and investor passwords are returned once and never stored.
    """
    account, info = await account_service.open_account(
        current_user,
        account_type=request.account_type,
        leverage=request.leverage,
        name=request.name,
        initial_deposit=request.initial_deposit,
        phone=request.phone or (current_user.phone or ""),
        country=request.country,
        city=request.city,
        state=request.state,
        zip_code=request.zip_code,
        address=request.address,
    )
    return AccountCreated(
        message="MT5 account created successfully",
        account=TradingAccountSchema.model_validate(account),
        master_password=info.master_password,
        investor_password=info.investor_password,
    )


@router.get(
    "/{login}",
    response_model=TradingAccountSchema,
    summary="Get one trading account",
)
async def get_account(
    login: int,
    current_user: User = Depends(get_current_active_user),
    account_service: AccountService = Depends(get_account_service),
) -> TradingAccountSchema:
    account = await account_service.get_for_user(current_user, login)
    return TradingAccountSchema.model_validate(account)


@router.post(
    "/{login}/sync",
    response_model=TradingAccountSchema,
    summary="Refresh the balance snapshot from the MT5 server",
)
async def sync_account(
    login: int,
    current_user: User = Depends(get_current_active_user),
    account_service: AccountService = Depends(get_account_service),
) -> TradingAccountSchema:
    account = await account_service.get_for_user(current_user, login)
    account = await account_service.sync(account)
    return TradingAccountSchema.model_validate(account)


@router.get(
    "/{login}/history",
    summary="Closed trades of an account",
    description="Trade history between `from` and `to` (default: the last 30 days).",
)
async def trade_history(
    login: int,
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    current_user: User = Depends(get_current_active_user),
    account_service: AccountService = Depends(get_account_service),
) -> dict:
    account = await account_service.get_for_user(current_user, login)
    return await account_service.trade_history(account, date_from, date_to)
