"""
MT5 CRM Backend - Trading Endpoints
"""
from fastapi import APIRouter, Depends

from mt5crm.db.models.user import User
from mt5crm.dependencies import get_account_service, get_current_active_user
from mt5crm.services.account_service import AccountService

router = APIRouter()


@router.get("/positions/{login}", summary="Open positions of an account")
async def get_positions(
    login: int,
    current_user: User = Depends(get_current_active_user),
    account_service: AccountService = Depends(get_account_service),
) -> list[dict]:
    account = await account_service.get_for_user(current_user, login)
    return await account_service.positions(account)
