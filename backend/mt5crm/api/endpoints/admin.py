"""
MT5 CRM Backend - Admin Endpoints

User and trading-account management. Every route requires an active
admin.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from mt5crm.db.models.trading_account import AccountType
from mt5crm.db.models.user import User, UserStatus
from mt5crm.db.repositories.trading_account import TradingAccountRepository
from mt5crm.db.repositories.user import UserRepository
from mt5crm.dependencies import (
    get_account_repository,
    get_account_service,
    get_auth_service,
    get_current_admin,
    get_mt5_gateway,
    get_user_repository,
)
from mt5crm.integrations.mt5.base import ACCOUNT_GROUPS, MT5Gateway
from mt5crm.schemas.account import (
    AdminBalanceOperationRequest,
    BalanceOperationResponse,
    BalanceUpdateRequest,
    TradingAccount as TradingAccountSchema,
)
from mt5crm.schemas.base import Message, ResponseModel
from mt5crm.schemas.user import AdminCreateUserRequest, User as UserSchema
from mt5crm.services.account_service import AccountService
from mt5crm.services.auth_service import AuthService
from mt5crm.utils.exceptions import (
    AccountNotFoundError,
    CRMException,
    UserNotFoundError,
    ValidationError,
)
from mt5crm.utils.logger import audit
from mt5crm.utils.money import money_to_float

router = APIRouter(dependencies=[Depends(get_current_admin)])


class AdminUserCreated(ResponseModel):
    message: str
    user: UserSchema
    account: Optional[TradingAccountSchema] = None
    master_password: Optional[str] = None
    investor_password: Optional[str] = None


def resolve_group(group: Optional[str]) -> tuple[str, AccountType]:
    """Map a group key or path to (group path, account type)."""
    if not group:
        return ACCOUNT_GROUPS["DEMO"], AccountType.DEMO
    path = ACCOUNT_GROUPS.get(group.upper(), group)
    if path not in ACCOUNT_GROUPS.values():
        raise ValidationError(errors=[{"field": "mt5Group", "message": f"Unknown MT5 group: {group}"}])
    account_type = AccountType.DEMO if path.startswith("demo") else AccountType.LIVE
    return path, account_type


@router.get("/dashboard-stats", summary="Dashboard statistics")
async def dashboard_stats(
    user_repo: UserRepository = Depends(get_user_repository),
    account_repo: TradingAccountRepository = Depends(get_account_repository),
    gateway: MT5Gateway = Depends(get_mt5_gateway),
) -> dict:
    totals = await account_repo.totals()
    online = await gateway.test_connection()
    return {
        "totalUsers": await user_repo.count(),
        "activeUsers": await user_repo.count_active(),
        "totalAccounts": totals["accounts"],
        "totalBalance": money_to_float(totals["balance"]),
        "totalEquity": money_to_float(totals["equity"]),
        "totalProfit": money_to_float(totals["equity"] - totals["balance"]),
        "serverStatus": "online" if online else "offline",
    }


# =========================
# User Management
# =========================

@router.get("/users", response_model=list[UserSchema], summary="List users")
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    user_repo: UserRepository = Depends(get_user_repository),
) -> list[UserSchema]:
    users = await user_repo.get_all(skip=skip, limit=limit)
    return [UserSchema.model_validate(u) for u in users]


@router.post(
    "/users",
    response_model=AdminUserCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user, optionally with an MT5 account",
)
async def create_user(
    user_data: AdminCreateUserRequest,
    admin: User = Depends(get_current_admin),
    auth_service: AuthService = Depends(get_auth_service),
    account_service: AccountService = Depends(get_account_service),
) -> AdminUserCreated:
    admin_id = admin.id
    group, account_type = resolve_group(user_data.mt5_group)

    user, _ = await auth_service.register(
        email=user_data.email,
        password=user_data.password,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        phone=user_data.phone,
        role=user_data.role,
    )
    user_out = UserSchema.model_validate(user)
    result = AdminUserCreated(message="User created successfully", user=user_out)

    if user_data.create_mt5_account:
        # The user is already committed; report a failed account instead of hiding the user
        try:
            account, info = await account_service.open_account(
                user,
                account_type=account_type,
                leverage=user_data.mt5_leverage,
                initial_deposit=user_data.initial_balance,
                group=group,
            )
        except CRMException as e:
            logger.error(f"User {user_out.id} created by admin {admin_id} without MT5 account: {e.message}")
            return AdminUserCreated(
                message=f"User created, but MT5 account creation failed: {e.message}",
                user=user_out,
            )
        result = AdminUserCreated(
            message="User created successfully",
            user=UserSchema.model_validate(user),
            account=TradingAccountSchema.model_validate(account),
            master_password=info.master_password,
            investor_password=info.investor_password,
        )

    audit.info(f"User {user_out.id} created by admin {admin_id}")
    return result


async def _set_user_status(
    user_id: int,
    new_status: UserStatus,
    user_repo: UserRepository,
) -> User:
    user = await user_repo.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    return await user_repo.set_status(user, new_status)


@router.post("/users/{user_id}/disable", response_model=Message, summary="Disable a user")
async def disable_user(
    user_id: int,
    admin: User = Depends(get_current_admin),
    user_repo: UserRepository = Depends(get_user_repository),
) -> Message:
    await _set_user_status(user_id, UserStatus.DISABLED, user_repo)
    audit.info(f"User {user_id} disabled by admin {admin.id}")
    return Message(message="User disabled successfully")


@router.post("/users/{user_id}/enable", response_model=Message, summary="Enable a user")
async def enable_user(
    user_id: int,
    admin: User = Depends(get_current_admin),
    user_repo: UserRepository = Depends(get_user_repository),
) -> Message:
    await _set_user_status(user_id, UserStatus.ACTIVE, user_repo)
    audit.info(f"User {user_id} enabled by admin {admin.id}")
    return Message(message="User enabled successfully")


# =========================
# MT5 Account Management
# =========================

@router.get("/accounts", response_model=list[TradingAccountSchema], summary="List active accounts")
async def list_accounts(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    account_repo: TradingAccountRepository = Depends(get_account_repository),
) -> list[TradingAccountSchema]:
    accounts = await account_repo.get_all_active(skip=skip, limit=limit)
    return [TradingAccountSchema.model_validate(a) for a in accounts]


@router.get("/accounts/{login}", response_model=TradingAccountSchema, summary="Get an account")
async def get_account(
    login: int,
    account_repo: TradingAccountRepository = Depends(get_account_repository),
) -> TradingAccountSchema:
    account = await account_repo.get_by_login(login)
    if account is None:
        raise AccountNotFoundError(login)
    return TradingAccountSchema.model_validate(account)


@router.put(
    "/accounts/{login}/balance",
    response_model=TradingAccountSchema,
    summary="Overwrite an account's balance snapshot",
)
async def update_balance(
    login: int,
    snapshot: BalanceUpdateRequest,
    admin: User = Depends(get_current_admin),
    account_repo: TradingAccountRepository = Depends(get_account_repository),
) -> TradingAccountSchema:
    account = await account_repo.update_balance(
        login,
        balance=snapshot.balance,
        equity=snapshot.equity,
        margin=snapshot.margin,
        free_margin=snapshot.free_margin,
        margin_level=snapshot.margin_level,
    )
    audit.info(f"Balance of {login} set to {snapshot.balance} by admin {admin.id}")
    return TradingAccountSchema.model_validate(account)


@router.post(
    "/accounts/{login}/deactivate",
    response_model=TradingAccountSchema,
    summary="Deactivate an account",
)
async def deactivate_account(
    login: int,
    admin: User = Depends(get_current_admin),
    account_repo: TradingAccountRepository = Depends(get_account_repository),
) -> TradingAccountSchema:
    account = await account_repo.deactivate(login)
    audit.info(f"Account {login} deactivated by admin {admin.id}")
    return TradingAccountSchema.model_validate(account)


@router.post(
    "/accounts/{login}/balance-operation",
    response_model=BalanceOperationResponse,
    summary="Deposit, withdraw, credit or bonus on an account",
)
async def balance_operation(
    login: int,
    operation: AdminBalanceOperationRequest,
    admin: User = Depends(get_current_admin),
    account_service: AccountService = Depends(get_account_service),
) -> BalanceOperationResponse:
    result, account = await account_service.admin_balance_operation(
        admin,
        login,
        operation=operation.type,
        amount=operation.amount,
        description=operation.description,
    )
    return BalanceOperationResponse(
        message="Balance operation completed",
        result=result.to_dict(),
        account=TradingAccountSchema.model_validate(account),
    )


# =========================
# Positions
# =========================

@router.get("/positions", summary="Open positions across all active accounts")
async def list_positions(
    account_service: AccountService = Depends(get_account_service),
) -> list[dict]:
    return await account_service.all_positions()
