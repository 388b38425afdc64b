from typing import List, Optional
from uuid import UUID
import logging
import re
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from fastapi import HTTPException, status

from ptoflow.core.error_handling import ValidationError, PersistenceError
from ptoflow.models.leave_type import LeaveType
from ptoflow.models.user import User
from ptoflow.schemas.leave_type import LeaveTypeCreate

logger = logging.getLogger(__name__)

SORT_ORDER_STEP = 10


async def get_leave_type(db: AsyncSession, leave_type_id: UUID) -> LeaveType:
    result = await db.execute(select(LeaveType).where(LeaveType.id == leave_type_id))
    leave_type = result.scalar_one_or_none()
    if not leave_type:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Leave type with ID {leave_type_id} not found",
        )
    return leave_type


async def get_active_leave_types(db: AsyncSession) -> List[LeaveType]:
    result = await db.execute(
        select(LeaveType)
        .where(LeaveType.is_active.is_(True))
        .order_by(LeaveType.sort_order, LeaveType.name)
    )
    return list(result.scalars().all())


async def generate_unique_code(db: AsyncSession, name: str) -> str:
    """
    Derive a code from the first four letters of ``name``.

    PERSONAL -> PERS, then PERS1, PERS2, ... while the code is taken.
    """
    base = re.sub(r"[^A-Za-z]", "", name)[:4].upper() or "TYPE"
    result = await db.execute(select(LeaveType.code).where(LeaveType.code.like(f"{base}%")))
    taken = set(result.scalars().all())

    code = base
    counter = 1
    while code in taken:
        code = f"{base}{counter}"
        counter += 1
    return code


async def _next_sort_order(db: AsyncSession) -> int:
    result = await db.execute(select(func.max(LeaveType.sort_order)))
    current_max = result.scalar()
    return (current_max or 0) + SORT_ORDER_STEP


async def create_leave_type(
    db: AsyncSession,
    data: LeaveTypeCreate,
) -> LeaveType:
    """Create a leave type, filling in code and sort order when omitted."""
    if data.specific_approvers:
        result = await db.execute(select(User.id).where(User.id.in_(data.specific_approvers)))
        found = set(result.scalars().all())
        missing = [str(approver_id) for approver_id in data.specific_approvers if approver_id not in found]
        if missing:
            raise ValidationError.for_field(
                "specific_approvers",
                f"Unknown approver ids: {', '.join(missing)}",
            )

    if data.code:
        code = data.code.strip().upper()
        existing = await db.execute(select(LeaveType.id).where(LeaveType.code == code))
        if existing.scalar_one_or_none() is not None:
            raise ValidationError.for_field("code", f"Leave type code {code} is already in use")
    else:
        code = await generate_unique_code(db, data.name)

    sort_order: Optional[int] = data.sort_order
    if sort_order is None:
        sort_order = await _next_sort_order(db)

    leave_type = LeaveType(
        id=uuid.uuid4(),
        name=data.name.strip(),
        code=code,
        description=data.description,
        color=data.color,
        multi_level_approval=data.multi_level_approval,
        disable_hierarchy_approval=data.disable_hierarchy_approval,
        specific_approvers=[str(approver_id) for approver_id in data.specific_approvers],
        show_in_department_calendar=data.show_in_department_calendar,
        is_active=True,
        sort_order=sort_order,
    )

    try:
        db.add(leave_type)
        await db.commit()
        await db.refresh(leave_type)
    except Exception:
        await db.rollback()
        logger.error(f"Failed to create leave type {data.name}", exc_info=True)
        raise PersistenceError("create leave type")

    logger.info(f"Created leave type {leave_type.code} ({leave_type.id})")
    return leave_type
