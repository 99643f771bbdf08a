"""
MT5 CRM Backend - API Router
"""
from fastapi import APIRouter

from mt5crm.api.endpoints import account, admin, auth, balance, payment, trading

api_router = APIRouter()


# API root endpoint
@api_router.get("/", tags=["API Info"])
async def api_root():
    """API root - returns version info."""
    return {
        "api": "MT5 CRM",
        "version": "1.0.0",
        "status": "operational"
    }


# Include all endpoint routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(balance.router, prefix="/balance", tags=["Balance"])
api_router.include_router(payment.router, prefix="/payment", tags=["Payment"])
api_router.include_router(account.router, prefix="/account", tags=["Accounts"])
api_router.include_router(trading.router, prefix="/trading", tags=["Trading"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
