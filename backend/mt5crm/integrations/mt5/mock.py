"""
Mock MT5 Manager Gateway

Stands in for the MT5 Manager API. Returns canned or pseudo-random data
with the same shapes a real gateway would return. Nothing here touches
a trading server.
"""
import random
import secrets
import string
import time
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from loguru import logger

from mt5crm.config import settings
from mt5crm.db.models.user import utcnow
from mt5crm.integrations.mt5.base import (
    BalanceOperationResult,
    BalanceOperationType,
    CreateAccountRequest,
    MT5AccountInfo,
    MT5Gateway,
)


PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"
MOCK_SYMBOLS = ["EURUSD", "GBPUSD", "USDJPY", "XAUUSD", "BTCUSD"]


def generate_password(length: int = 12) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


class MockMT5Gateway(MT5Gateway):
    """In-memory MT5 gateway returning canned data."""

    name = "mock-mt5"

    def __init__(self, server_name: Optional[str] = None, seed: Optional[int] = None):
        self.server_name = server_name or settings.MT5_SERVER_NAME
        self._random = random.Random(seed)
        self._accounts: dict[int, MT5AccountInfo] = {}

    async def test_connection(self) -> bool:
        return True

    def _new_login(self) -> int:
        while True:
            login = self._random.randint(100000, 999999)
            if login not in self._accounts:
                return login

    async def create_account(self, request: CreateAccountRequest) -> MT5AccountInfo:
        balance = Decimal(request.balance)
        info = MT5AccountInfo(
            login=self._new_login(),
            name=request.name,
            email=request.email,
            group=request.group,
            leverage=request.leverage,
            server=self.server_name,
            balance=balance,
            equity=balance,
            margin=Decimal("0"),
            free_margin=balance,
            margin_level=Decimal("0"),
            currency=request.currency,
            master_password=generate_password(),
            investor_password=generate_password(),
        )
        self._accounts[info.login] = info
        logger.info(f"[mock-mt5] Account {info.login} created in group {request.group}")
        return info

    async def get_account_info(self, login: int) -> Optional[MT5AccountInfo]:
        info = self._accounts.get(login)
        if info is None:
            return None
        # Drift equity a little to simulate floating P/L
        drift = Decimal(str(round(self._random.uniform(-0.02, 0.02), 4)))
        info.equity = (info.balance * (Decimal("1") + drift)).quantize(Decimal("0.000001"))
        info.free_margin = info.equity - info.margin
        return info

    async def balance_operation(
        self,
        login: int,
        operation: BalanceOperationType,
        amount: Decimal,
        comment: str = "",
    ) -> BalanceOperationResult:
        amount = abs(Decimal(amount))
        info = self._accounts.get(login)
        if info is not None:
            delta = amount * operation.sign
            info.balance += delta
            info.equity += delta
            info.free_margin += delta
        result = BalanceOperationResult(
            transaction_id=f"TXN{int(time.time() * 1000)}{self._random.randint(100, 999)}",
            login=login,
            operation=operation,
            amount=amount,
            comment=comment,
        )
        logger.info(f"[mock-mt5] {operation.value} of {amount} on {login}")
        return result

    async def get_positions(self, login: int) -> list[dict]:
        positions = []
        for i in range(self._random.randint(0, 3)):
            open_price = round(self._random.uniform(1.0, 2.0), 5)
            current_price = round(open_price * self._random.uniform(0.99, 1.01), 5)
            volume = round(self._random.choice([0.01, 0.1, 0.5, 1.0]), 2)
            positions.append({
                "ticket": login * 10 + i,
                "login": login,
                "symbol": self._random.choice(MOCK_SYMBOLS),
                "type": self._random.choice(["buy", "sell"]),
                "volume": volume,
                "openPrice": open_price,
                "currentPrice": current_price,
                "profit": round((current_price - open_price) * volume * 100000, 2),
                "swap": 0.0,
                "commission": 0.0,
                "openTime": (utcnow() - timedelta(hours=i + 1)).isoformat(),
            })
        return positions

    async def get_balance_history(
        self,
        login: int,
        date_from: datetime,
        date_to: datetime,
    ) -> list[dict]:
        """Generated DEAL_TYPE_BALANCE deals; positive profit is a deposit."""
        span = max((date_to - date_from).total_seconds(), 0)
        deals = []
        for i in range(self._random.randint(2, 6)):
            amount = round(self._random.uniform(50, 2000), 2)
            if self._random.random() < 0.35:
                amount = -amount
            when = date_from + timedelta(seconds=self._random.uniform(0, span))
            deals.append({
                "deal": f"{login}{i:04d}",
                "login": login,
                "type": "DEAL_TYPE_BALANCE",
                "profit": amount,
                "comment": "Deposit" if amount > 0 else "Withdrawal",
                "time": when.isoformat(),
            })
        deals.sort(key=lambda d: d["time"], reverse=True)
        return deals

    async def get_trade_history(
        self,
        login: int,
        date_from: datetime,
        date_to: datetime,
    ) -> list[dict]:
        span = max((date_to - date_from).total_seconds(), 0)
        trades = []
        for i in range(self._random.randint(0, 8)):
            open_time = date_from + timedelta(seconds=self._random.uniform(0, span))
            close_time = min(open_time + timedelta(minutes=self._random.randint(1, 600)), date_to)
            open_price = round(self._random.uniform(1.0, 2.0), 5)
            close_price = round(open_price * self._random.uniform(0.99, 1.01), 5)
            volume = self._random.choice([0.01, 0.1, 0.5, 1.0])
            side = self._random.choice(["buy", "sell"])
            direction = 1 if side == "buy" else -1
            trades.append({
                "ticket": login * 100 + i,
                "login": login,
                "symbol": self._random.choice(MOCK_SYMBOLS),
                "type": side,
                "volume": volume,
                "openPrice": open_price,
                "closePrice": close_price,
                "profit": round((close_price - open_price) * direction * volume * 100000, 2),
                "swap": 0.0,
                "commission": round(-volume * 7, 2),
                "openTime": open_time.isoformat(),
                "closeTime": close_time.isoformat(),
                "comment": "",
            })
        trades.sort(key=lambda t: t["closeTime"], reverse=True)
        return trades
