"""
MT5 Manager API integration
"""
from mt5crm.integrations.mt5.base import (
    ACCOUNT_GROUPS,
    LEVERAGE_OPTIONS,
    BalanceOperationType,
    CreateAccountRequest,
    MT5AccountInfo,
    MT5Gateway,
)
from mt5crm.integrations.mt5.mock import MockMT5Gateway

__all__ = [
    "ACCOUNT_GROUPS",
    "LEVERAGE_OPTIONS",
    "BalanceOperationType",
    "CreateAccountRequest",
    "MT5AccountInfo",
    "MT5Gateway",
    "MockMT5Gateway",
]
