"""
MT5 CRM Backend - Balance Endpoints

Deposits, withdrawal requests and balance history of the caller's
linked MT5 account.
"""
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from mt5crm.db.models.user import User
from mt5crm.dependencies import get_account_service, get_current_active_user
from mt5crm.schemas.balance import DepositRequest, WithdrawRequest
from mt5crm.services.account_service import AccountService

router = APIRouter()


@router.post("/deposit", summary="Deposit funds")
async def deposit(
    request: DepositRequest,
    current_user: User = Depends(get_current_active_user),
    account_service: AccountService = Depends(get_account_service),
) -> dict:
    return await account_service.deposit(
        current_user,
        amount=request.amount,
        reference=request.payment_method_id,
        description=request.description,
    )


@router.post(
    "/withdraw",
    status_code=status.HTTP_201_CREATED,
    summary="Request a withdrawal",
)
async def withdraw(
    request: WithdrawRequest,
    current_user: User = Depends(get_current_active_user),
    account_service: AccountService = Depends(get_account_service),
) -> dict:
    return await account_service.request_withdrawal(
        current_user,
        amount=request.amount,
        method=request.method,
        details=request.details,
        reason=request.reason,
    )


@router.get("/history", summary="Balance operations history")
async def history(
    type: Literal["deposit", "withdrawal", "all"] = Query("all"),
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    current_user: User = Depends(get_current_active_user),
    account_service: AccountService = Depends(get_account_service),
) -> list[dict]:
    return await account_service.balance_history(
        current_user,
        kind=type,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/withdrawal-requests", summary="My withdrawal requests")
async def withdrawal_requests(
    current_user: User = Depends(get_current_active_user),
) -> list[dict]:
    # Requests are not persisted yet
    return []
