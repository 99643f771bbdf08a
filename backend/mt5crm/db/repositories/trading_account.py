"""
MT5 CRM Backend - Trading Account Repository
"""
from typing import Optional, List

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from mt5crm.db.models.trading_account import TradingAccount, MONEY_FIELDS
from mt5crm.db.models.user import utcnow
from mt5crm.utils.exceptions import AccountNotFoundError, DuplicateLoginError, ValidationError
from mt5crm.utils.money import to_decimal, Number


class TradingAccountRepository:
    """Repository for MT5 trading account records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_login(self, login: int) -> Optional[TradingAccount]:
        """
        Get account by MT5 login id.

        Args:
            login: MT5 login id

        Returns:
            TradingAccount if found, None otherwise
        """
        result = await self.session.execute(
            select(TradingAccount).where(TradingAccount.login == login)
        )
        return result.scalar_one_or_none()

    async def get_active_by_user(self, user_id: int) -> List[TradingAccount]:
        """
        Get the active accounts of one user, newest first.

        Deactivated accounts are excluded.
        """
        result = await self.session.execute(
            select(TradingAccount)
            .where(TradingAccount.user_id == user_id, TradingAccount.is_active.is_(True))
            .order_by(TradingAccount.created_at.desc(), TradingAccount.id.desc())
        )
        return list(result.scalars().all())

    async def get_all_active(self, skip: int = 0, limit: Optional[int] = 100) -> List[TradingAccount]:
        result = await self.session.execute(
            select(TradingAccount)
            .where(TradingAccount.is_active.is_(True))
            .order_by(TradingAccount.created_at.desc(), TradingAccount.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def totals(self) -> dict:
        """Aggregate balance and equity over active accounts."""
        result = await self.session.execute(
            select(
                func.count(TradingAccount.id),
                func.coalesce(func.sum(TradingAccount.balance), 0),
                func.coalesce(func.sum(TradingAccount.equity), 0),
            ).where(TradingAccount.is_active.is_(True))
        )
        count, balance, equity = result.one()
        return {
            "accounts": count,
            "balance": to_decimal(balance),
            "equity": to_decimal(equity),
        }

    async def create(self, account: TradingAccount) -> TradingAccount:
        """
        Insert a new trading account.

        Raises:
            ValidationError: If any field constraint is violated
            DuplicateLoginError: If the login already exists
        """
        account.normalize()
        for field in MONEY_FIELDS:
            setattr(account, field, to_decimal(getattr(account, field)))

        errors = account.validate()
        if errors:
            raise ValidationError(errors=errors)

        if await self.get_by_login(account.login):
            raise DuplicateLoginError(account.login)

        self.session.add(account)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Trading account insert rejected: {e.orig}")
            raise DuplicateLoginError(account.login) from e
        await self.session.refresh(account)
        return account

    async def update_balance(
        self,
        login: int,
        balance: Number,
        equity: Number,
        margin: Number,
        free_margin: Number,
        margin_level: Number,
    ) -> TradingAccount:
        """
        Overwrite the balance snapshot in a single commit.

        Last write wins; there is no ledger behind the snapshot.

        Raises:
            AccountNotFoundError: If no account has this login
        """
        account = await self.get_by_login(login)
        if account is None:
            raise AccountNotFoundError(login)

        account.balance = to_decimal(balance)
        account.equity = to_decimal(equity)
        account.margin = to_decimal(margin)
        account.free_margin = to_decimal(free_margin)
        account.margin_level = to_decimal(margin_level)
        account.last_sync_at = utcnow()

        await self.session.commit()
        await self.session.refresh(account)
        return account

    async def deactivate(self, login: int) -> TradingAccount:
        """
        Mark an account inactive. Monetary fields are left as they are.

        Raises:
            AccountNotFoundError: If no account has this login
        """
        account = await self.get_by_login(login)
        if account is None:
            raise AccountNotFoundError(login)

        account.is_active = False
        await self.session.commit()
        await self.session.refresh(account)
        return account

