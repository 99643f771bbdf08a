"""
MT5 CRM Backend - Services Package
"""
from mt5crm.services.auth_service import AuthService
from mt5crm.services.account_service import AccountService

__all__ = [
    "AuthService",
    "AccountService",
]
