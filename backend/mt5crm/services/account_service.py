"""
MT5 CRM Backend - Trading Account Service

Glue between the MT5 gateway and the trading-account store: opening
accounts, pulling balance snapshots, deposits, withdrawal requests,
admin balance operations and trade history.
"""
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

from loguru import logger

from mt5crm.config import settings
from mt5crm.db.models.trading_account import AccountType, TradingAccount
from mt5crm.db.models.user import User, utcnow
from mt5crm.db.repositories.trading_account import TradingAccountRepository
from mt5crm.db.repositories.user import UserRepository
from mt5crm.integrations.mt5.base import (
    ACCOUNT_GROUPS,
    BalanceOperationResult,
    BalanceOperationType,
    CreateAccountRequest,
    MT5AccountInfo,
    MT5Gateway,
)
from mt5crm.utils.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    InsufficientPermissionsError,
    IntegrationError,
)
from mt5crm.utils.logger import audit
from mt5crm.utils.money import to_decimal


HISTORY_DEFAULT_DAYS = 30
BALANCE_DEAL_TYPE = "DEAL_TYPE_BALANCE"


def group_for(account_type: AccountType) -> str:
    if AccountType(account_type) == AccountType.LIVE:
        return ACCOUNT_GROUPS["LIVE_STANDARD"]
    return ACCOUNT_GROUPS["DEMO"]


def filter_balance_deals(deals: list[dict], kind: Optional[str] = None) -> list[dict]:
    """Keep balance deals only; deposits have positive profit, withdrawals negative."""
    balance_deals = [d for d in deals if d.get("type") == BALANCE_DEAL_TYPE]
    if kind == "deposit":
        return [d for d in balance_deals if d.get("profit", 0) > 0]
    if kind == "withdrawal":
        return [d for d in balance_deals if d.get("profit", 0) < 0]
    return balance_deals


def history_window(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
    """Naive-UTC (from, to); defaults to the last 30 days."""
    if date_to is not None and date_to.tzinfo is not None:
        date_to = date_to.astimezone(timezone.utc).replace(tzinfo=None)
    if date_from is not None and date_from.tzinfo is not None:
        date_from = date_from.astimezone(timezone.utc).replace(tzinfo=None)
    date_to = date_to or utcnow()
    date_from = date_from or date_to - timedelta(days=HISTORY_DEFAULT_DAYS)
    return date_from, date_to


class AccountService:
    """Trading account operations for one request."""

    def __init__(
        self,
        account_repo: TradingAccountRepository,
        user_repo: UserRepository,
        gateway: MT5Gateway,
    ):
        self.account_repo = account_repo
        self.user_repo = user_repo
        self.gateway = gateway

    async def open_account(
        self,
        user: User,
        account_type: AccountType = AccountType.DEMO,
        leverage: int = settings.MT5_DEFAULT_LEVERAGE,
        name: Optional[str] = None,
        initial_deposit: Optional[Decimal] = None,
        group: Optional[str] = None,
        **contact: str,
    ) -> tuple[TradingAccount, MT5AccountInfo]:
        """
        Create the account on the MT5 server and persist its record.

        The user's login_id is linked to the first account opened.

        Returns:
            Tuple of (stored TradingAccount, gateway info with passwords)
        """
        account_type = AccountType(account_type)
        if initial_deposit is None:
            initial_deposit = (
                to_decimal(settings.MT5_DEFAULT_DEMO_BALANCE)
                if account_type == AccountType.DEMO else Decimal("0")
            )

        request = CreateAccountRequest(
            name=name or user.full_name,
            email=user.email,
            group=group or group_for(account_type),
            leverage=leverage,
            balance=to_decimal(initial_deposit),
            currency=settings.MT5_DEFAULT_CURRENCY,
            **contact,
        )
        logger.info(f"Creating MT5 account for {user.email} ({account_type.value}, 1:{leverage})")
        info = await self.gateway.create_account(request)

        account = TradingAccount(
            login=info.login,
            user_id=user.id,
            name=info.name,
            email=info.email,
            server=info.server,
            group=info.group,
            leverage=info.leverage,
            account_type=account_type.value,
            balance=info.balance,
            equity=info.equity,
            margin=info.margin,
            free_margin=info.free_margin,
            margin_level=info.margin_level,
            currency=info.currency,
        )
        account = await self.account_repo.create(account)
        await self.user_repo.link_login(user, account.login)
        logger.info(f"MT5 account {account.login} stored for user {user.id}")
        return account, info

    async def get_for_user(self, user: User, login: int) -> TradingAccount:
        """
        Load an account the user may see (owner or admin).

        Raises:
            AccountNotFoundError: No account with this login
            InsufficientPermissionsError: Account belongs to someone else
        """
        account = await self.account_repo.get_by_login(login)
        if account is None:
            raise AccountNotFoundError(login)
        if account.user_id != user.id and not user.is_admin:
            raise InsufficientPermissionsError("Not allowed to access this account")
        return account

    async def sync(self, account: TradingAccount) -> TradingAccount:
        """Overwrite the stored snapshot with the server's numbers."""
        info = await self.gateway.get_account_info(account.login)
        if info is None:
            raise IntegrationError(self.gateway.name, f"Account {account.login} not found on server")
        return await self.account_repo.update_balance(
            account.login,
            balance=info.balance,
            equity=info.equity,
            margin=info.margin,
            free_margin=info.free_margin,
            margin_level=info.margin_level,
        )

    async def _linked_account(self, user: User) -> TradingAccount:
        if user.login_id is None:
            raise AccountNotFoundError()
        account = await self.account_repo.get_by_login(user.login_id)
        if account is None or not account.is_active:
            raise AccountNotFoundError(user.login_id)
        return account

    async def _mirror(self, account: TradingAccount, delta: Decimal) -> TradingAccount:
        """Apply a server-side balance change to the stored snapshot."""
        return await self.account_repo.update_balance(
            account.login,
            balance=account.balance + delta,
            equity=account.equity + delta,
            margin=account.margin,
            free_margin=account.free_margin + delta,
            margin_level=account.margin_level,
        )

    async def deposit(
        self,
        user: User,
        amount: Decimal,
        reference: str,
        description: Optional[str] = None,
    ) -> dict[str, Any]:
        """Credit the user's linked account and mirror it in the snapshot."""
        account = await self._linked_account(user)
        amount = abs(to_decimal(amount))

        result = await self.gateway.balance_operation(
            account.login,
            BalanceOperationType.DEPOSIT,
            amount,
            comment=f"Payment - {reference}",
        )
        await self._mirror(account, amount)
        logger.info(f"Deposit processed: user={user.id} login={account.login} amount={amount}")
        return {
            "message": "Deposit processed successfully",
            "result": result.to_dict(),
            "transaction": {
                "type": "deposit",
                "amount": float(amount),
                "description": description or "Card deposit",
                "timestamp": utcnow().isoformat(),
                "status": "completed",
            },
        }

    async def request_withdrawal(
        self,
        user: User,
        amount: Decimal,
        method: str,
        details: dict,
        reason: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        File a pending withdrawal request. The balance is not touched.

        Raises:
            AccountNotFoundError: User has no linked account
            InsufficientFundsError: Amount exceeds the stored balance
        """
        account = await self._linked_account(user)
        amount = to_decimal(amount)
        if account.balance < amount:
            raise InsufficientFundsError()

        request = {
            "id": str(int(time.time() * 1000)),
            "userId": user.id,
            "loginId": account.login,
            "amount": float(amount),
            "method": method,
            "details": details,
            "reason": reason,
            "status": "pending",
            "requestedAt": utcnow().isoformat(),
        }
        logger.info(f"Withdrawal request created: user={user.id} login={account.login} amount={amount}")
        return {"message": "Withdrawal request submitted successfully", "request": request}

    async def balance_history(
        self,
        user: User,
        kind: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[dict]:
        account = await self._linked_account(user)
        date_from, date_to = history_window(date_from, date_to)
        deals = await self.gateway.get_balance_history(account.login, date_from, date_to)
        return filter_balance_deals(deals, kind)

    async def positions(self, account: TradingAccount) -> list[dict]:
        return await self.gateway.get_positions(account.login)

    async def trade_history(
        self,
        account: TradingAccount,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> dict[str, Any]:
        date_from, date_to = history_window(date_from, date_to)
        trades = await self.gateway.get_trade_history(account.login, date_from, date_to)
        return {
            "trades": trades,
            "count": len(trades),
            "from": date_from.isoformat(),
            "to": date_to.isoformat(),
        }

    async def all_positions(self) -> list[dict]:
        """Open positions across every active account; unreachable accounts are skipped."""
        positions = []
        for account in await self.account_repo.get_all_active(limit=None):
            try:
                positions.extend(await self.gateway.get_positions(account.login))
            except IntegrationError as e:
                logger.warning(f"Positions of {account.login} unavailable: {e.message}")
        return positions

    async def admin_balance_operation(
        self,
        admin: User,
        login: int,
        operation: BalanceOperationType,
        amount: Decimal,
        description: str,
    ) -> tuple[BalanceOperationResult, TradingAccount]:
        """
        Credit or debit any active account on behalf of an admin.

        The snapshot follows the server; withdrawals may drive it negative.

        Raises:
            AccountNotFoundError: No active account with this login
        """
        account = await self.account_repo.get_by_login(login)
        if account is None or not account.is_active:
            raise AccountNotFoundError(login)

        operation = BalanceOperationType(operation)
        amount = abs(to_decimal(amount))
        result = await self.gateway.balance_operation(
            login,
            operation,
            amount,
            comment=f"Admin operation by {admin.email}: {description}",
        )
        account = await self._mirror(account, amount * operation.sign)
        audit.info(
            f"Balance operation by admin {admin.id}: {operation.value} of {amount} on {login}"
        )
        return result, account
