"""
MT5 Manager Gateway Interface

Defines the boundary to the MT5 Manager API. The CRM never talks to the
trading server directly; everything goes through an MT5Gateway
implementation.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from mt5crm.db.models.user import utcnow


ACCOUNT_GROUPS = {
    "DEMO": "demo\\demoforex",
    "LIVE_STANDARD": "real\\standard",
    "LIVE_ECN": "real\\ecn",
    "LIVE_VIP": "real\\vip",
}

LEVERAGE_OPTIONS = [1, 10, 20, 50, 100, 200, 300, 400, 500, 1000]


class BalanceOperationType(str, Enum):
    """Kind of balance operation on the trading server. Only withdrawals debit."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    CREDIT = "credit"
    BONUS = "bonus"

    @property
    def sign(self) -> int:
        return -1 if self == BalanceOperationType.WITHDRAWAL else 1


@dataclass
class CreateAccountRequest:
    """Data sent to the manager API when opening an account."""
    name: str
    email: str
    group: str
    leverage: int
    balance: Decimal = Decimal("0")
    currency: str = "USD"
    phone: str = ""
    country: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    address: str = ""


@dataclass
class MT5AccountInfo:
    """Account snapshot as reported by the trading server."""
    login: int
    name: str
    email: str
    group: str
    leverage: int
    server: str
    balance: Decimal
    equity: Decimal
    margin: Decimal = Decimal("0")
    free_margin: Decimal = Decimal("0")
    margin_level: Decimal = Decimal("0")
    currency: str = "USD"
    master_password: Optional[str] = None
    investor_password: Optional[str] = None


@dataclass
class BalanceOperationResult:
    transaction_id: str
    login: int
    operation: BalanceOperationType
    amount: Decimal
    comment: str
    timestamp: datetime = field(default_factory=utcnow)
    status: str = "completed"

    def to_dict(self) -> dict:
        return {
            "transactionId": self.transaction_id,
            "login": self.login,
            "type": self.operation.value,
            "amount": float(self.amount),
            "comment": self.comment,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status,
        }


class MT5Gateway(ABC):
    """Abstract MT5 manager gateway."""

    name: str = "mt5"

    @abstractmethod
    async def test_connection(self) -> bool:
        """Return True when the manager API answers."""

    @abstractmethod
    async def create_account(self, request: CreateAccountRequest) -> MT5AccountInfo:
        """Open a new account and return its login and credentials."""

    @abstractmethod
    async def get_account_info(self, login: int) -> Optional[MT5AccountInfo]:
        """Fetch the live balance snapshot of an account."""

    @abstractmethod
    async def balance_operation(
        self,
        login: int,
        operation: BalanceOperationType,
        amount: Decimal,
        comment: str = "",
    ) -> BalanceOperationResult:
        """Credit or debit an account on the trading server."""

    @abstractmethod
    async def get_positions(self, login: int) -> list[dict]:
        """Open positions of an account."""

    @abstractmethod
    async def get_balance_history(
        self,
        login: int,
        date_from: datetime,
        date_to: datetime,
    ) -> list[dict]:
        """Balance deals (deposits and withdrawals) in a time range."""

    @abstractmethod
    async def get_trade_history(
        self,
        login: int,
        date_from: datetime,
        date_to: datetime,
    ) -> list[dict]:
        """Closed trades in a time range, newest first."""
