"""
Policy resolution: how many days a user may draw on for a leave type and year.

A ledger row, once it exists, is authoritative. The active LeavePolicy only
seeds rows that have not been created yet.
"""
from typing import Optional, List
from uuid import UUID
from datetime import date
from decimal import Decimal
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_
from fastapi import HTTPException, status

from ptoflow.core.error_handling import PersistenceError
from ptoflow.models.leave_balance import LeaveBalance
from ptoflow.models.leave_policy import LeavePolicy
from ptoflow.models.leave_type import LeaveType
from ptoflow.models.user import User
from ptoflow.schemas.leave_balance import LeaveBalanceSummary, LeaveBalanceOverview
from ptoflow.schemas.leave_type import LeavePolicyCreate
from ptoflow.services.timezone_service import company_today

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def active_policy_conditions(today: date):
    return and_(
        LeavePolicy.is_active.is_(True),
        LeavePolicy.effective_date <= today,
        or_(LeavePolicy.end_date.is_(None), LeavePolicy.end_date >= today),
    )


async def get_active_policy(
    db: AsyncSession,
    user_id: UUID,
    leave_type_id: UUID,
    today: Optional[date] = None,
) -> Optional[LeavePolicy]:
    """Most recently effective active policy for the user and leave type."""
    today = today or company_today()
    result = await db.execute(
        select(LeavePolicy)
        .where(
            and_(
                LeavePolicy.user_id == user_id,
                LeavePolicy.leave_type_id == leave_type_id,
                active_policy_conditions(today),
            )
        )
        .order_by(LeavePolicy.effective_date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def policy_default(
    db: AsyncSession,
    user_id: UUID,
    leave_type_id: UUID,
    today: Optional[date] = None,
) -> Decimal:
    """Opening balance for a ledger row that does not exist yet."""
    policy = await get_active_policy(db, user_id, leave_type_id, today)
    if policy is None:
        return ZERO
    return Decimal(policy.annual_accrual_amount or 0)


async def get_balance_row(
    db: AsyncSession,
    user_id: UUID,
    leave_type_id: UUID,
    year: int,
    for_update: bool = False,
) -> Optional[LeaveBalance]:
    query = select(LeaveBalance).where(
        and_(
            LeaveBalance.user_id == user_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def resolve_available_days(
    db: AsyncSession,
    user_id: UUID,
    leave_type_id: UUID,
    year: int,
    today: Optional[date] = None,
    for_update: bool = False,
) -> Decimal:
    """
    Days the user can still request for this leave type and year.

    Uses the ledger row when present, otherwise the active policy's annual
    accrual amount, otherwise zero. With ``for_update`` the existing ledger
    row stays locked for the rest of the caller's transaction.
    """
    balance = await get_balance_row(db, user_id, leave_type_id, year, for_update=for_update)
    if balance is not None:
        return Decimal(balance.available)
    return await policy_default(db, user_id, leave_type_id, today)


async def get_balance_overview(
    db: AsyncSession,
    user_id: UUID,
    year: int,
    today: Optional[date] = None,
) -> LeaveBalanceOverview:
    """Per active leave type figures for a user, from the ledger or the policy default."""
    today = today or company_today()

    types_result = await db.execute(
        select(LeaveType)
        .where(LeaveType.is_active.is_(True))
        .order_by(LeaveType.sort_order, LeaveType.name)
    )
    leave_types = types_result.scalars().all()

    balances_result = await db.execute(
        select(LeaveBalance).where(
            and_(LeaveBalance.user_id == user_id, LeaveBalance.year == year)
        )
    )
    balances_by_type = {row.leave_type_id: row for row in balances_result.scalars().all()}

    policies_result = await db.execute(
        select(LeavePolicy)
        .where(and_(LeavePolicy.user_id == user_id, active_policy_conditions(today)))
        .order_by(LeavePolicy.effective_date)
    )
    # Later effective dates win
    policies_by_type = {policy.leave_type_id: policy for policy in policies_result.scalars().all()}

    summaries: List[LeaveBalanceSummary] = []
    for leave_type in leave_types:
        row = balances_by_type.get(leave_type.id)
        if row is not None:
            summaries.append(LeaveBalanceSummary(
                leave_type_id=leave_type.id,
                leave_type_name=leave_type.name,
                leave_type_code=leave_type.code,
                year=year,
                balance=row.balance,
                pending_balance=row.pending_balance,
                used_balance=row.used_balance,
                available=row.available,
                has_balance_record=True,
            ))
            continue

        policy = policies_by_type.get(leave_type.id)
        if policy is None:
            continue
        opening = Decimal(policy.annual_accrual_amount or 0)
        summaries.append(LeaveBalanceSummary(
            leave_type_id=leave_type.id,
            leave_type_name=leave_type.name,
            leave_type_code=leave_type.code,
            year=year,
            balance=opening,
            pending_balance=ZERO,
            used_balance=ZERO,
            available=opening,
            has_balance_record=False,
        ))

    return LeaveBalanceOverview(user_id=user_id, year=year, balances=summaries)


async def get_my_active_policies(
    db: AsyncSession,
    user_id: UUID,
    today: Optional[date] = None,
) -> List[LeavePolicy]:
    today = today or company_today()
    result = await db.execute(
        select(LeavePolicy)
        .where(and_(LeavePolicy.user_id == user_id, active_policy_conditions(today)))
        .order_by(LeavePolicy.effective_date.desc())
    )
    return list(result.scalars().all())


async def create_leave_policy(
    db: AsyncSession,
    data: LeavePolicyCreate,
) -> LeavePolicy:
    """Assign a leave policy to a user."""
    user_result = await db.execute(select(User.id).where(User.id == data.user_id))
    if user_result.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {data.user_id} not found",
        )

    type_result = await db.execute(select(LeaveType.id).where(LeaveType.id == data.leave_type_id))
    if type_result.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Leave type with ID {data.leave_type_id} not found",
        )

    policy = LeavePolicy(
        id=uuid.uuid4(),
        user_id=data.user_id,
        leave_type_id=data.leave_type_id,
        initial_days=data.initial_days,
        annual_accrual_amount=data.annual_accrual_amount,
        rollover_enabled=data.rollover_enabled,
        max_rollover_days=data.max_rollover_days,
        effective_date=data.effective_date,
        end_date=data.end_date,
        is_active=True,
    )

    try:
        db.add(policy)
        await db.commit()
        await db.refresh(policy)
    except Exception:
        await db.rollback()
        logger.error("Failed to create leave policy", exc_info=True)
        raise PersistenceError("create leave policy")

    logger.info(f"Assigned leave policy {policy.id} to user {data.user_id} for leave type {data.leave_type_id}")
    return policy
