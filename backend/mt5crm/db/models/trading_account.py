"""
MT5 CRM Backend - Trading Account Model

Per-account balance snapshot mirrored from the MT5 server. The five
monetary fields are overwritten together on every sync; no history is kept.
"""
import enum
import re
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, BigInteger, String, Numeric, Boolean, DateTime, ForeignKey, Index
)
from sqlalchemy.orm import relationship

from mt5crm.db.database import Base
from mt5crm.db.models.user import utcnow
from mt5crm.utils.money import profit_loss, profit_loss_percentage


MIN_LEVERAGE = 1
MAX_LEVERAGE = 1000
NAME_MAX_LENGTH = 100
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")

MONEY_FIELDS = ("balance", "equity", "margin", "free_margin", "margin_level")


class AccountType(str, enum.Enum):
    """MT5 account types."""
    DEMO = "demo"
    LIVE = "live"


class TradingAccount(Base):
    """MT5 trading account owned by exactly one user."""

    __tablename__ = "trading_accounts"

    id = Column(Integer, primary_key=True)
    login = Column(BigInteger, unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Account details
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    email = Column(String(255), nullable=False)
    server = Column(String(100), nullable=False)
    group = Column(String(100), nullable=False)
    leverage = Column(Integer, nullable=False, default=100)
    account_type = Column(String(10), nullable=False, default=AccountType.DEMO.value, index=True)

    # Snapshot (rounded to 2 places only when exposed)
    balance = Column(Numeric(20, 6), nullable=False, default=Decimal("0"))
    equity = Column(Numeric(20, 6), nullable=False, default=Decimal("0"))
    margin = Column(Numeric(20, 6), nullable=False, default=Decimal("0"))
    free_margin = Column(Numeric(20, 6), nullable=False, default=Decimal("0"))
    margin_level = Column(Numeric(20, 6), nullable=False, default=Decimal("0"))
    currency = Column(String(3), nullable=False, default="USD")

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_sync_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", back_populates="trading_accounts")

    __table_args__ = (
        Index("ix_trading_accounts_created_at_desc", created_at.desc()),
    )

    @property
    def profit_loss(self) -> Decimal:
        return profit_loss(self.balance, self.equity)

    @property
    def profit_loss_percentage(self) -> Decimal:
        return profit_loss_percentage(self.balance, self.equity)

    def validate(self) -> list[dict]:
        """Return the list of violated field constraints."""
        errors = []

        if not self.login:
            errors.append({"field": "login", "message": "MT5 login ID is required"})
        if not self.user_id:
            errors.append({"field": "user_id", "message": "User ID is required"})

        name = (self.name or "").strip()
        if not name:
            errors.append({"field": "name", "message": "Account name is required"})
        elif len(name) > NAME_MAX_LENGTH:
            errors.append({"field": "name", "message": f"Name cannot exceed {NAME_MAX_LENGTH} characters"})

        for field in ("email", "server", "group"):
            if not (getattr(self, field) or "").strip():
                errors.append({"field": field, "message": f"{field.capitalize()} is required"})

        if self.leverage is None or not MIN_LEVERAGE <= self.leverage <= MAX_LEVERAGE:
            errors.append({
                "field": "leverage",
                "message": f"Leverage must be between {MIN_LEVERAGE} and {MAX_LEVERAGE}",
            })

        if self.account_type not in {t.value for t in AccountType}:
            errors.append({"field": "account_type", "message": f"Invalid account type: {self.account_type}"})

        if not CURRENCY_PATTERN.match(self.currency or ""):
            errors.append({"field": "currency", "message": "Currency code must be 3 characters"})

        return errors

    def normalize(self) -> None:
        if self.name:
            self.name = self.name.strip()
        if self.email:
            self.email = self.email.strip().lower()
        if self.currency:
            self.currency = self.currency.strip().upper()

    def __repr__(self):
        return f"<TradingAccount {self.login} ({self.account_type})>"
