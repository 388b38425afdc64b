"""
Leave request lifecycle: submission, cancellation and the read side.

States are pending -> approved | denied | cancelled. Terminal states never
change. Approvals and denials live in approval_service.
"""
from typing import Optional, List, Dict, Tuple
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
from sqlalchemy.orm import selectinload
from fastapi import HTTPException, status

from ptoflow.core.config import settings
from ptoflow.core.error_handling import (
    ValidationError,
    InsufficientBalanceError,
    AuthorizationError,
    InvalidStateTransitionError,
    PersistenceError,
)
from ptoflow.core.query_builder import get_paginated_results, build_user_filtered_query, filter_by_status
from ptoflow.models.leave_request import LeaveRequest, LeaveApproval, LeaveStatus, DayOptionType
from ptoflow.models.leave_type import LeaveType
from ptoflow.models.user import User, UserRole
from ptoflow.schemas.leave_request import LeaveRequestCreate
from ptoflow.services import leave_ledger_service as ledger
from ptoflow.services.approval_chain_service import build_approval_chain, create_approval_records
from ptoflow.services.holiday_service import get_holiday_dates
from ptoflow.services.leave_policy_service import resolve_available_days
from ptoflow.services.leave_type_service import get_leave_type
from ptoflow.services.timezone_service import company_now, hours_until

logger = logging.getLogger(__name__)

DAY_OPTION_WEIGHTS = {
    DayOptionType.FULL: Decimal("1.0"),
    DayOptionType.HALF: Decimal("0.5"),
}


def leave_request_loader_options() -> list:
    return [
        selectinload(LeaveRequest.user),
        selectinload(LeaveRequest.leave_type),
        selectinload(LeaveRequest.approvals).selectinload(LeaveApproval.approver),
    ]


def is_business_day(day: date) -> bool:
    return day.weekday() < 5


def validate_leave_request(
    data: LeaveRequestCreate,
    leave_type: LeaveType,
    today: date,
) -> None:
    """Raise ValidationError listing every problem with a submission."""
    errors: List[Dict[str, str]] = []

    if not leave_type.is_active:
        errors.append({"field": "leave_type_id", "message": "This leave type is not available."})

    if data.start_date > data.end_date:
        errors.append({"field": "end_date", "message": "End date must be on or after the start date."})

    if data.start_date < today:
        errors.append({"field": "start_date", "message": "Start date cannot be in the past."})

    if not is_business_day(data.start_date):
        errors.append({
            "field": "start_date",
            "message": f"Weekend days are not allowed for PTO requests. {data.start_date.strftime('%A')} is not a business day.",
        })

    if not is_business_day(data.end_date):
        errors.append({
            "field": "end_date",
            "message": f"Weekend days are not allowed for PTO requests. {data.end_date.strftime('%A')} is not a business day.",
        })

    seen_dates = set()
    for index, option in enumerate(data.day_options):
        field = f"day_options.{index}.date"
        if option.date in seen_dates:
            errors.append({"field": field, "message": "Duplicate day option date."})
            continue
        seen_dates.add(option.date)
        if option.date < data.start_date or option.date > data.end_date:
            errors.append({"field": field, "message": "Day option date must fall within the requested range."})
        elif not is_business_day(option.date):
            errors.append({
                "field": field,
                "message": f"Weekend days are not allowed for PTO requests. {option.date.strftime('%A')} is not a business day.",
            })

    if data.total_days < settings.MIN_REQUEST_DAYS:
        errors.append({
            "field": "total_days",
            "message": f"Total days must be at least {settings.MIN_REQUEST_DAYS}.",
        })

    if errors:
        raise ValidationError(errors)


async def calculate_total_days(db: AsyncSession, data: LeaveRequestCreate) -> Decimal:
    """
    Days charged for a submission.

    Without day options the client-supplied total stands. With them, each
    full day counts 1, each half day 0.5, and company holidays count 0.
    """
    if not data.day_options:
        return data.total_days

    holidays = await get_holiday_dates(db, data.start_date, data.end_date)
    total = Decimal("0")
    for option in data.day_options:
        if option.date in holidays:
            continue
        total += DAY_OPTION_WEIGHTS[option.type]
    return total


def generate_request_number(user_id: UUID, now: datetime) -> str:
    return f"PTO-U{user_id}-{int(now.timestamp())}"


def can_cancel(leave_request: LeaveRequest, now: Optional[datetime] = None) -> bool:
    """Pending requests always; approved ones until the notice window before the start date."""
    if leave_request.status == LeaveStatus.PENDING:
        return True
    if leave_request.status == LeaveStatus.APPROVED:
        return hours_until(leave_request.start_date, now) >= settings.CANCELLATION_NOTICE_HOURS
    return False


def can_manage(leave_request: LeaveRequest, user: User) -> bool:
    """Owner, the owner's direct manager, or an admin."""
    if user.role == UserRole.ADMIN or leave_request.user_id == user.id:
        return True
    owner = leave_request.user
    return owner is not None and owner.reports_to_user_id == user.id


def can_view(leave_request: LeaveRequest, user: User) -> bool:
    if can_manage(leave_request, user):
        return True
    return any(approval.approver_id == user.id for approval in leave_request.approvals)


async def get_leave_request(
    db: AsyncSession,
    request_id: UUID,
    for_update: bool = False,
) -> LeaveRequest:
    """Load a request with its owner, leave type and approvals."""
    query = select(LeaveRequest).where(LeaveRequest.id == request_id)
    if for_update:
        query = query.with_for_update()
    query = query.options(*leave_request_loader_options()).execution_options(populate_existing=True)

    result = await db.execute(query)
    leave_request = result.scalar_one_or_none()
    if not leave_request:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Leave request with ID {request_id} not found",
        )
    return leave_request


async def submit_leave_request(
    db: AsyncSession,
    user: User,
    data: LeaveRequestCreate,
    now: Optional[datetime] = None,
) -> LeaveRequest:
    """
    Create a pending leave request, reserve its days and build its approval chain.

    All writes happen in one transaction. Any error leaves no request, ledger
    change or approval row behind.
    """
    now = company_now(now)
    today = now.date()

    leave_type = await get_leave_type(db, data.leave_type_id)
    validate_leave_request(data, leave_type, today)

    total_days = await calculate_total_days(db, data)
    if total_days < settings.MIN_REQUEST_DAYS:
        raise ValidationError.for_field(
            "day_options",
            f"Selected days amount to {total_days} after holidays; at least {settings.MIN_REQUEST_DAYS} is required.",
        )

    steps = build_approval_chain(user, leave_type)
    if not steps:
        raise ValidationError.for_field("approvers", "No approver could be resolved for this leave type")

    year = data.start_date.year

    try:
        available_days = await resolve_available_days(
            db, user.id, leave_type.id, year, today=today, for_update=True
        )
        if total_days > available_days:
            raise InsufficientBalanceError(available=available_days, requested=total_days)

        leave_request = LeaveRequest(
            id=uuid.uuid4(),
            request_number=generate_request_number(user.id, now),
            user_id=user.id,
            leave_type_id=leave_type.id,
            start_date=data.start_date,
            end_date=data.end_date,
            total_days=total_days,
            reason=data.reason,
            day_options=[
                {"date": option.date.isoformat(), "type": option.type.value}
                for option in data.day_options
            ],
            status=LeaveStatus.PENDING,
            submitted_at=now,
        )
        db.add(leave_request)
        await db.flush()

        await ledger.reserve(
            db, user.id, leave_type.id, year, total_days,
            leave_request_id=leave_request.id, actor_id=user.id, today=today,
        )
        create_approval_records(db, leave_request, steps)
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.error(f"Failed to submit leave request for user {user.id}", exc_info=True)
        raise PersistenceError("submit leave request")

    logger.info(
        f"Leave request {leave_request.request_number} submitted by user {user.id}: "
        f"{total_days} days of {leave_type.code}, {len(steps)} approval step(s)"
    )
    return leave_request


async def cancel_leave_request(
    db: AsyncSession,
    request_id: UUID,
    actor: User,
    now: Optional[datetime] = None,
) -> LeaveRequest:
    """
    Cancel a pending request, or an approved one outside the notice window.

    Pending days are released; approved days are refunded to the balance.
    """
    now = company_now(now)

    try:
        leave_request = await get_leave_request(db, request_id, for_update=True)

        if not can_manage(leave_request, actor):
            raise AuthorizationError("You are not authorized to cancel this request.")

        if not can_cancel(leave_request, now):
            if leave_request.status == LeaveStatus.APPROVED:
                message = (
                    f"Approved requests can only be cancelled at least "
                    f"{settings.CANCELLATION_NOTICE_HOURS} hours before the start date."
                )
            else:
                message = f"This leave request has already been {leave_request.status.value} and cannot be cancelled."
            raise InvalidStateTransitionError(message)

        prior_status = leave_request.status
        result = await db.execute(
            update(LeaveRequest)
            .where(and_(LeaveRequest.id == request_id, LeaveRequest.status == prior_status))
            .values(
                status=LeaveStatus.CANCELLED,
                cancelled_at=now,
                reason=f"Cancelled by user {actor.name}",
            )
        )
        if result.rowcount != 1:
            raise InvalidStateTransitionError("This leave request was modified by another action. Please reload and try again.")

        year = leave_request.start_date.year
        if prior_status == LeaveStatus.PENDING:
            await ledger.release_pending(
                db, leave_request.user_id, leave_request.leave_type_id, year, leave_request.total_days,
                leave_request_id=leave_request.id, actor_id=actor.id, today=now.date(),
                description="Released pending days from cancelled request",
            )
        else:
            await ledger.consume(
                db, leave_request.user_id, leave_request.leave_type_id, year, leave_request.total_days,
                leave_request_id=leave_request.id, actor_id=actor.id, today=now.date(),
            )

        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.error(f"Failed to cancel leave request {request_id}", exc_info=True)
        raise PersistenceError("cancel leave request")

    logger.info(f"Leave request {leave_request.request_number} cancelled by user {actor.id} (was {prior_status.value})")
    return leave_request


async def get_my_leave_requests(
    db: AsyncSession,
    user_id: UUID,
    status_filter: Optional[LeaveStatus] = None,
    skip: int = 0,
    limit: int = 100,
) -> Tuple[List[LeaveRequest], int]:
    """Get a user's own leave requests, newest first."""
    query = build_user_filtered_query(LeaveRequest, user_id)
    if status_filter:
        query = filter_by_status(query, LeaveRequest, status_filter)

    return await get_paginated_results(
        db,
        query,
        skip=skip,
        limit=limit,
        order_by=LeaveRequest.created_at.desc(),
        options=leave_request_loader_options(),
    )
