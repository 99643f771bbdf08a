"""
MT5 CRM Backend - Payment Endpoints
"""
from fastapi import APIRouter, Depends

from mt5crm.db.models.user import User
from mt5crm.dependencies import get_current_active_user, get_payment_gateway
from mt5crm.integrations.payments import PaymentGateway
from mt5crm.schemas.balance import ConfirmPaymentRequest, CreateIntentRequest

router = APIRouter()


@router.post("/create-intent", summary="Create a payment intent")
async def create_intent(
    request: CreateIntentRequest,
    current_user: User = Depends(get_current_active_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> dict:
    intent = await gateway.create_intent(current_user.id, request.amount, request.currency)
    return {
        "success": True,
        "clientSecret": intent["client_secret"],
        "paymentIntentId": intent["id"],
        "amount": intent["amount"],
        "currency": intent["currency"],
    }


@router.post("/confirm", summary="Confirm a payment")
async def confirm_payment(
    request: ConfirmPaymentRequest,
    current_user: User = Depends(get_current_active_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> dict:
    confirmation = await gateway.confirm(current_user.id, request.payment_intent_id)
    return {"success": True, "payment": confirmation}


@router.get("/history", summary="Payment history")
async def payment_history(
    current_user: User = Depends(get_current_active_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> list[dict]:
    return await gateway.history(current_user.id)
