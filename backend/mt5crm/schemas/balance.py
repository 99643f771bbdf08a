"""
MT5 CRM Backend - Balance and Payment Schemas

Deposit, withdrawal and payment-intent payloads. The operations behind them
are served by the mocked MT5 / payment gateways.
"""
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import Field

from mt5crm.schemas.base import RequestModel


WithdrawalMethod = Literal["bank_transfer", "card", "crypto"]


class DepositRequest(RequestModel):
    amount: Decimal = Field(..., gt=0)
    payment_method_id: str = Field(..., min_length=1)
    description: Optional[str] = None


class WithdrawRequest(RequestModel):
    amount: Decimal = Field(..., gt=0)
    method: WithdrawalMethod
    details: dict[str, Any]
    reason: Optional[str] = None


class CreateIntentRequest(RequestModel):
    amount: Decimal = Field(..., gt=0)
    currency: str = Field("usd", min_length=3, max_length=3)


class ConfirmPaymentRequest(RequestModel):
    payment_intent_id: str = Field(..., min_length=1)
