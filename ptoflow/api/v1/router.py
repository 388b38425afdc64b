from fastapi import APIRouter
from ptoflow.api.v1.endpoints import health, leave, leave_balances

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(leave.router, prefix="/leave", tags=["leave"])
api_router.include_router(leave_balances.router, prefix="/leave", tags=["leave-balances"])
