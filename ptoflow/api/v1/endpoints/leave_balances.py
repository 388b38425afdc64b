from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from ptoflow.core.database import get_db
from ptoflow.core.dependencies import get_current_user, get_current_admin
from ptoflow.core.error_handling import handle_endpoint_errors
from ptoflow.models.user import User
from ptoflow.schemas.leave_balance import (
    LeaveBalanceOverview,
    LeaveBalanceSummary,
    BalanceAdjustmentRequest,
    LeaveTransactionResponse,
    LeaveTransactionListResponse,
)
from ptoflow.schemas.leave_type import LeavePolicyCreate, LeavePolicyResponse
from ptoflow.services.leave_ledger_service import apply_balance_adjustment, get_my_transactions
from ptoflow.services.leave_policy_service import (
    get_balance_overview,
    get_my_active_policies,
    create_leave_policy,
)
from ptoflow.services.leave_type_service import get_leave_type
from ptoflow.services.timezone_service import company_today

router = APIRouter()


@router.get("/balances", response_model=LeaveBalanceOverview)
@handle_endpoint_errors(operation_name="get_balance_overview")
async def get_balance_overview_endpoint(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current user's balances per leave type."""
    today = company_today()
    return await get_balance_overview(db, current_user.id, year or today.year, today)


@router.get("/balances/transactions", response_model=LeaveTransactionListResponse)
@handle_endpoint_errors(operation_name="get_my_transactions")
async def get_my_transactions_endpoint(
    leave_type_id: Optional[UUID] = Query(None),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current user's ledger history."""
    transactions, total = await get_my_transactions(
        db,
        current_user.id,
        leave_type_id=leave_type_id,
        year=year,
        skip=skip,
        limit=limit,
    )
    return LeaveTransactionListResponse(
        transactions=[LeaveTransactionResponse.model_validate(t) for t in transactions],
        total=total,
    )


@router.post("/balances/adjust", response_model=LeaveBalanceSummary)
@handle_endpoint_errors(operation_name="adjust_leave_balance")
async def adjust_leave_balance_endpoint(
    data: BalanceAdjustmentRequest,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Apply an administrative balance adjustment (admin only)."""
    balance = await apply_balance_adjustment(db, data, current_user)
    leave_type = await get_leave_type(db, balance.leave_type_id)
    return LeaveBalanceSummary(
        leave_type_id=leave_type.id,
        leave_type_name=leave_type.name,
        leave_type_code=leave_type.code,
        year=balance.year,
        balance=balance.balance,
        pending_balance=balance.pending_balance,
        used_balance=balance.used_balance,
        available=balance.available,
        has_balance_record=True,
    )


@router.get("/policies/my", response_model=list[LeavePolicyResponse])
@handle_endpoint_errors(operation_name="get_my_policies")
async def get_my_policies_endpoint(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current user's active leave policies."""
    return await get_my_active_policies(db, current_user.id)


@router.post("/policies", response_model=LeavePolicyResponse, status_code=status.HTTP_201_CREATED)
@handle_endpoint_errors(operation_name="create_leave_policy")
async def create_leave_policy_endpoint(
    data: LeavePolicyCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Assign a leave policy to a user (admin only)."""
    return await create_leave_policy(db, data)
