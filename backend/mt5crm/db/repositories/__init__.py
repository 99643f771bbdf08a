"""
MT5 CRM Backend - Data Repositories

Repository pattern implementations for database operations.
"""
from mt5crm.db.repositories.user import UserRepository
from mt5crm.db.repositories.trading_account import TradingAccountRepository

__all__ = [
    "UserRepository",
    "TradingAccountRepository",
]
