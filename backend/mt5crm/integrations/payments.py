"""
Payment Gateway

Boundary to the card payment processor. Only a mock implementation
exists; it mimics the intent / client-secret handshake.
"""
import random
import string
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from loguru import logger

from mt5crm.db.models.user import utcnow


class PaymentGateway(ABC):
    """Abstract payment processor."""

    @abstractmethod
    async def create_intent(self, user_id: int, amount: Decimal, currency: str = "usd") -> dict:
        """Create a payment intent and return its id and client secret."""

    @abstractmethod
    async def confirm(self, user_id: int, payment_intent_id: str) -> dict:
        """Confirm a payment intent."""

    @abstractmethod
    async def history(self, user_id: int) -> list[dict]:
        """Past payments of a user."""


class MockPaymentGateway(PaymentGateway):
    """Returns canned payment data."""

    async def create_intent(self, user_id: int, amount: Decimal, currency: str = "usd") -> dict:
        stamp = int(time.time() * 1000)
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
        intent = {
            "id": f"pi_{stamp}",
            "client_secret": f"pi_{stamp}_secret_{suffix}",
            "amount": int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
            "currency": currency.lower(),
            "status": "requires_payment_method",
        }
        logger.info(f"Payment intent created: user={user_id} amount={amount} id={intent['id']}")
        return intent

    async def confirm(self, user_id: int, payment_intent_id: str) -> dict:
        logger.info(f"Payment confirmed: user={user_id} id={payment_intent_id}")
        return {
            "id": payment_intent_id,
            "status": "completed",
            "timestamp": utcnow().isoformat(),
        }

    async def history(self, user_id: int) -> list[dict]:
        now = utcnow()
        return [
            {
                "id": "pi_1234567890",
                "amount": 100,
                "currency": "usd",
                "status": "succeeded",
                "created": (now - timedelta(days=1)).isoformat(),
                "description": "Account deposit",
            },
            {
                "id": "pi_0987654321",
                "amount": 250,
                "currency": "usd",
                "status": "succeeded",
                "created": (now - timedelta(days=2)).isoformat(),
                "description": "Account deposit",
            },
        ]
