"""
Unit Tests - Trading Account Service
Mock MT5 gateway on top of an in-memory database.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from mt5crm.db.models import AccountType, User
from mt5crm.db.repositories import TradingAccountRepository, UserRepository
from mt5crm.integrations.mt5 import BalanceOperationType, MockMT5Gateway
from mt5crm.services.account_service import (
    AccountService,
    filter_balance_deals,
    group_for,
    history_window,
)
from mt5crm.utils.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    InsufficientPermissionsError,
    IntegrationError,
)


@pytest.fixture
def user_repo(db_session) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def service(db_session, user_repo) -> AccountService:
    return AccountService(
        TradingAccountRepository(db_session),
        user_repo,
        MockMT5Gateway(server_name="MT5-Test-Server", seed=7),
    )


async def add_user(user_repo, email="alice@example.com", role="user") -> User:
    return await user_repo.create(User(
        email=email,
        hashed_password="$2b$04$abcdefghijklmnopqrstuv",
        first_name="Alice",
        last_name="Smith",
        role=role,
    ))


class TestHelpers:

    def test_group_for(self):
        assert group_for(AccountType.DEMO) == "demo\\demoforex"
        assert group_for(AccountType.LIVE) == "real\\standard"

    def test_filter_balance_deals(self):
        deals = [
            {"type": "DEAL_TYPE_BALANCE", "profit": 100},
            {"type": "DEAL_TYPE_BALANCE", "profit": -40},
            {"type": "DEAL_TYPE_BUY", "profit": 15},
        ]
        assert len(filter_balance_deals(deals)) == 2
        assert len(filter_balance_deals(deals, "all")) == 2
        assert filter_balance_deals(deals, "deposit") == [deals[0]]
        assert filter_balance_deals(deals, "withdrawal") == [deals[1]]

    def test_history_window_defaults_to_30_days(self):
        date_from, date_to = history_window()
        assert date_to - date_from == timedelta(days=30)
        assert date_to.tzinfo is None

    def test_history_window_normalizes_to_naive_utc(self):
        date_from, date_to = history_window(
            datetime(2026, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2))),
            datetime(2026, 1, 31),
        )
        assert date_from == datetime(2026, 1, 1, 0, 0)
        assert date_to == datetime(2026, 1, 31)


class TestOpenAccount:

    async def test_demo_account_gets_default_balance_and_links_login(self, service, user_repo):
        user = await add_user(user_repo)
        account, info = await service.open_account(user)

        assert account.user_id == user.id
        assert account.group == "demo\\demoforex"
        assert account.account_type == "demo"
        assert account.balance == Decimal("10000")
        assert account.server == "MT5-Test-Server"
        assert info.master_password
        assert user.login_id == account.login

    async def test_second_account_keeps_first_link(self, service, user_repo):
        user = await add_user(user_repo)
        first, _ = await service.open_account(user)
        second, _ = await service.open_account(user, account_type=AccountType.LIVE, leverage=500)

        assert second.group == "real\\standard"
        assert second.balance == Decimal("0")
        assert second.leverage == 500
        assert user.login_id == first.login


class TestAccess:

    async def test_owner_and_admin_can_read(self, service, user_repo):
        owner = await add_user(user_repo)
        admin = await add_user(user_repo, email="admin@example.com", role="admin")
        account, _ = await service.open_account(owner)

        assert (await service.get_for_user(owner, account.login)).id == account.id
        assert (await service.get_for_user(admin, account.login)).id == account.id

    async def test_stranger_is_forbidden(self, service, user_repo):
        owner = await add_user(user_repo)
        stranger = await add_user(user_repo, email="eve@example.com")
        account, _ = await service.open_account(owner)

        with pytest.raises(InsufficientPermissionsError):
            await service.get_for_user(stranger, account.login)

    async def test_missing_account(self, service, user_repo):
        owner = await add_user(user_repo)
        with pytest.raises(AccountNotFoundError):
            await service.get_for_user(owner, 111111)


class TestBalance:

    async def test_deposit_updates_snapshot(self, service, user_repo):
        user = await add_user(user_repo)
        account, _ = await service.open_account(user, initial_deposit=Decimal("100"))

        result = await service.deposit(user, Decimal("25.50"), reference="pm_card")
        assert result["transaction"]["status"] == "completed"
        assert result["transaction"]["amount"] == 25.5

        stored = await service.account_repo.get_by_login(account.login)
        assert stored.balance == Decimal("125.50")
        assert stored.free_margin == Decimal("125.50")

    async def test_deposit_without_linked_account(self, service, user_repo):
        user = await add_user(user_repo)
        with pytest.raises(AccountNotFoundError):
            await service.deposit(user, Decimal("10"), reference="pm_card")

    async def test_withdrawal_request(self, service, user_repo):
        user = await add_user(user_repo)
        account, _ = await service.open_account(user, initial_deposit=Decimal("100"))

        result = await service.request_withdrawal(user, Decimal("60"), "bank_transfer", {"iban": "X"})
        assert result["request"]["status"] == "pending"
        assert result["request"]["loginId"] == account.login
        # Pending requests do not move money
        assert (await service.account_repo.get_by_login(account.login)).balance == Decimal("100")

    async def test_withdrawal_over_balance(self, service, user_repo):
        user = await add_user(user_repo)
        await service.open_account(user, initial_deposit=Decimal("100"))
        with pytest.raises(InsufficientFundsError):
            await service.request_withdrawal(user, Decimal("100.01"), "card", {})

    async def test_history_is_filtered(self, service, user_repo):
        user = await add_user(user_repo)
        await service.open_account(user)
        deposits = await service.balance_history(user, kind="deposit")
        assert all(d["profit"] > 0 for d in deposits)


class TestSync:

    async def test_sync_overwrites_snapshot(self, service, user_repo):
        user = await add_user(user_repo)
        account, _ = await service.open_account(user, initial_deposit=Decimal("1000"))

        synced = await service.sync(account)
        assert synced.last_sync_at is not None
        assert synced.balance == Decimal("1000")

    async def test_sync_unknown_to_server(self, service, user_repo, db_session):
        user = await add_user(user_repo)
        account, _ = await service.open_account(user)
        service.gateway = MockMT5Gateway(seed=1)
        with pytest.raises(IntegrationError):
            await service.sync(account)


class TestDeactivatedAccount:

    async def test_linked_but_deactivated_account_is_not_usable(self, service, user_repo):
        user = await add_user(user_repo)
        account, _ = await service.open_account(user, initial_deposit=Decimal("100"))
        await service.account_repo.deactivate(account.login)

        with pytest.raises(AccountNotFoundError):
            await service.deposit(user, Decimal("50"), reference="pm_card")
        with pytest.raises(AccountNotFoundError):
            await service.request_withdrawal(user, Decimal("10"), "card", {})
        with pytest.raises(AccountNotFoundError):
            await service.balance_history(user)

        stored = await service.account_repo.get_by_login(account.login)
        assert stored.balance == Decimal("100")


class TestTradeHistory:

    async def test_trade_history_window(self, service, user_repo):
        user = await add_user(user_repo)
        account, _ = await service.open_account(user)

        history = await service.trade_history(
            account, datetime(2026, 1, 1), datetime(2026, 1, 31),
        )
        assert history["from"] == "2026-01-01T00:00:00"
        assert history["to"] == "2026-01-31T00:00:00"
        assert history["count"] == len(history["trades"])
        for trade in history["trades"]:
            assert "2026-01-01" <= trade["closeTime"] <= "2026-01-31T00:00:00"


class TestAdminBalanceOperation:

    @pytest.fixture
    async def admin(self, user_repo):
        return await add_user(user_repo, email="admin@example.com", role="admin")

    @pytest.mark.parametrize("operation, expected", [
        (BalanceOperationType.DEPOSIT, Decimal("150")),
        (BalanceOperationType.WITHDRAWAL, Decimal("50")),
        (BalanceOperationType.CREDIT, Decimal("150")),
        (BalanceOperationType.BONUS, Decimal("150")),
    ])
    async def test_mirrors_snapshot(self, service, user_repo, admin, operation, expected):
        user = await add_user(user_repo)
        account, _ = await service.open_account(user, initial_deposit=Decimal("100"))

        result, updated = await service.admin_balance_operation(
            admin, account.login, operation, Decimal("50"), "Manual adjustment",
        )
        assert result.operation == operation
        assert result.comment == "Admin operation by admin@example.com: Manual adjustment"
        assert updated.balance == expected
        assert updated.free_margin == expected

    async def test_withdrawal_may_go_negative(self, service, user_repo, admin):
        user = await add_user(user_repo)
        account, _ = await service.open_account(user, initial_deposit=Decimal("10"))
        _, updated = await service.admin_balance_operation(
            admin, account.login, BalanceOperationType.WITHDRAWAL, Decimal("25"), "Chargeback",
        )
        assert updated.balance == Decimal("-15")

    async def test_unknown_or_inactive_account(self, service, user_repo, admin):
        user = await add_user(user_repo)
        account, _ = await service.open_account(user)
        await service.account_repo.deactivate(account.login)

        for login in (account.login, 111111):
            with pytest.raises(AccountNotFoundError):
                await service.admin_balance_operation(
                    admin, login, BalanceOperationType.DEPOSIT, Decimal("1"), "x",
                )


class UnreachableForOneLogin(MockMT5Gateway):

    def __init__(self, broken_login: int, **kwargs):
        super().__init__(**kwargs)
        self.broken_login = broken_login

    async def get_positions(self, login: int) -> list[dict]:
        if login == self.broken_login:
            raise IntegrationError(self.name, "timeout")
        return [{"login": login, "symbol": "EURUSD"}]


class TestAllPositions:

    async def test_collects_active_accounts_and_skips_failures(self, service, user_repo):
        user = await add_user(user_repo)
        first, _ = await service.open_account(user)
        second, _ = await service.open_account(user)
        retired, _ = await service.open_account(user)
        await service.account_repo.deactivate(retired.login)

        service.gateway = UnreachableForOneLogin(broken_login=second.login, seed=3)
        positions = await service.all_positions()
        assert [p["login"] for p in positions] == [first.login]
