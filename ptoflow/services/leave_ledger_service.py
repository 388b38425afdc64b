"""
Balance ledger for (user, leave type, year).

Every mutation locks the row with SELECT ... FOR UPDATE, applies the change,
and appends a LeaveTransaction. These functions flush but never commit; the
calling service owns the transaction.
"""
from typing import Optional, List, Tuple
from uuid import UUID
from datetime import date
from decimal import Decimal
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from fastapi import HTTPException, status

from ptoflow.core.error_handling import PersistenceError
from ptoflow.core.query_builder import get_paginated_results, build_user_filtered_query
from ptoflow.models.leave_balance import LeaveBalance
from ptoflow.models.leave_transaction import LeaveTransaction, TransactionType
from ptoflow.models.leave_type import LeaveType
from ptoflow.models.user import User
from ptoflow.schemas.leave_balance import BalanceAdjustmentRequest
from ptoflow.services.leave_policy_service import get_balance_row, policy_default

logger = logging.getLogger(__name__)


async def get_or_create_locked_balance(
    db: AsyncSession,
    user_id: UUID,
    leave_type_id: UUID,
    year: int,
    today: Optional[date] = None,
) -> LeaveBalance:
    """
    Lock the ledger row, creating it from the policy default if missing.

    A new row starts with balance = policy default and zero pending/used, so
    the effect applied afterwards is the same whether or not it pre-existed.
    """
    balance = await get_balance_row(db, user_id, leave_type_id, year, for_update=True)
    if balance is not None:
        return balance

    opening = await policy_default(db, user_id, leave_type_id, today)
    balance = LeaveBalance(
        id=uuid.uuid4(),
        user_id=user_id,
        leave_type_id=leave_type_id,
        year=year,
        balance=opening,
        pending_balance=Decimal("0"),
        used_balance=Decimal("0"),
    )
    db.add(balance)
    await db.flush()
    logger.info(f"Created leave balance for user {user_id}, leave type {leave_type_id}, year {year} with {opening} days")
    return balance


def _record_transaction(
    db: AsyncSession,
    balance: LeaveBalance,
    transaction_type: TransactionType,
    amount: Decimal,
    balance_before: Decimal,
    pending_before: Decimal,
    leave_request_id: Optional[UUID] = None,
    actor_id: Optional[UUID] = None,
    description: Optional[str] = None,
) -> LeaveTransaction:
    transaction = LeaveTransaction(
        id=uuid.uuid4(),
        leave_balance_id=balance.id,
        user_id=balance.user_id,
        leave_type_id=balance.leave_type_id,
        leave_request_id=leave_request_id,
        year=balance.year,
        type=transaction_type,
        amount=amount,
        balance_before=balance_before,
        balance_after=balance.balance,
        pending_before=pending_before,
        pending_after=balance.pending_balance,
        description=description,
        created_by_id=actor_id,
    )
    db.add(transaction)
    return transaction


async def reserve(
    db: AsyncSession,
    user_id: UUID,
    leave_type_id: UUID,
    year: int,
    days: Decimal,
    leave_request_id: Optional[UUID] = None,
    actor_id: Optional[UUID] = None,
    today: Optional[date] = None,
) -> LeaveBalance:
    """Hold ``days`` against the balance: pending_balance += days."""
    balance = await get_or_create_locked_balance(db, user_id, leave_type_id, year, today)
    balance_before, pending_before = balance.balance, balance.pending_balance

    balance.pending_balance = pending_before + days

    _record_transaction(
        db, balance, TransactionType.RESERVATION, days, balance_before, pending_before,
        leave_request_id=leave_request_id, actor_id=actor_id,
        description=f"Reserved {days} days for leave request",
    )
    await db.flush()
    return balance


async def release_pending(
    db: AsyncSession,
    user_id: UUID,
    leave_type_id: UUID,
    year: int,
    days: Decimal,
    leave_request_id: Optional[UUID] = None,
    actor_id: Optional[UUID] = None,
    today: Optional[date] = None,
    description: Optional[str] = None,
) -> LeaveBalance:
    """Return reserved days: pending_balance -= days, never below zero."""
    balance = await get_or_create_locked_balance(db, user_id, leave_type_id, year, today)
    balance_before, pending_before = balance.balance, balance.pending_balance

    # A row synthesized during cancellation holds no reservation
    balance.pending_balance = max(Decimal("0"), pending_before - days)

    _record_transaction(
        db, balance, TransactionType.RELEASE, days, balance_before, pending_before,
        leave_request_id=leave_request_id, actor_id=actor_id,
        description=description or f"Released {days} pending days",
    )
    await db.flush()
    return balance


async def consume(
    db: AsyncSession,
    user_id: UUID,
    leave_type_id: UUID,
    year: int,
    days: Decimal,
    leave_request_id: Optional[UUID] = None,
    actor_id: Optional[UUID] = None,
    today: Optional[date] = None,
) -> LeaveBalance:
    """Refund an approved request: balance += days, used_balance -= days."""
    balance = await get_or_create_locked_balance(db, user_id, leave_type_id, year, today)
    balance_before, pending_before = balance.balance, balance.pending_balance

    balance.balance = balance_before + days
    balance.used_balance = balance.used_balance - days

    _record_transaction(
        db, balance, TransactionType.REFUND, days, balance_before, pending_before,
        leave_request_id=leave_request_id, actor_id=actor_id,
        description=f"Refunded {days} days from cancelled approved request",
    )
    await db.flush()
    return balance


async def adjust(
    db: AsyncSession,
    user_id: UUID,
    leave_type_id: UUID,
    year: int,
    amount: Decimal,
    description: str,
    actor_id: Optional[UUID] = None,
) -> LeaveBalance:
    """Administrative change to ``balance``. Not checked against pending reservations."""
    balance = await get_or_create_locked_balance(db, user_id, leave_type_id, year)
    balance_before, pending_before = balance.balance, balance.pending_balance

    balance.balance = balance_before + amount

    _record_transaction(
        db, balance, TransactionType.ADJUSTMENT, amount, balance_before, pending_before,
        actor_id=actor_id, description=description,
    )
    await db.flush()
    return balance


async def available(
    db: AsyncSession,
    user_id: UUID,
    leave_type_id: UUID,
    year: int,
) -> Optional[Decimal]:
    """balance - pending_balance for an existing row, None when there is no row."""
    balance = await get_balance_row(db, user_id, leave_type_id, year)
    if balance is None:
        return None
    return Decimal(balance.available)


async def apply_balance_adjustment(
    db: AsyncSession,
    data: BalanceAdjustmentRequest,
    actor: User,
) -> LeaveBalance:
    """Commit an administrative adjustment for one ledger row."""
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

    try:
        balance = await adjust(
            db, data.user_id, data.leave_type_id, data.year, data.amount,
            description=data.description, actor_id=actor.id,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.error(f"Failed to adjust leave balance for user {data.user_id}", exc_info=True)
        raise PersistenceError("adjust leave balance")

    logger.info(
        f"Adjusted leave balance for user {data.user_id}, leave type {data.leave_type_id}, "
        f"year {data.year} by {data.amount} (actor {actor.id})"
    )
    return balance


async def get_my_transactions(
    db: AsyncSession,
    user_id: UUID,
    leave_type_id: Optional[UUID] = None,
    year: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> Tuple[List[LeaveTransaction], int]:
    """Ledger history for one user, newest first."""
    query = build_user_filtered_query(LeaveTransaction, user_id)
    if leave_type_id:
        query = query.where(LeaveTransaction.leave_type_id == leave_type_id)
    if year:
        query = query.where(LeaveTransaction.year == year)

    return await get_paginated_results(
        db,
        query,
        skip=skip,
        limit=limit,
        order_by=LeaveTransaction.created_at.desc(),
    )
