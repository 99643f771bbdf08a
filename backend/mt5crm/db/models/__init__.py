"""
MT5 CRM Backend - Database Models
"""
from mt5crm.db.models.user import User, UserRole, UserStatus
from mt5crm.db.models.trading_account import TradingAccount, AccountType

__all__ = [
    "User",
    "UserRole",
    "UserStatus",
    "TradingAccount",
    "AccountType",
]
