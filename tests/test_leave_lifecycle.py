"""
Tests for leave request submission and cancellation.
"""
import re
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi import HTTPException
from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ptoflow.core.error_handling import (
    ValidationError,
    InsufficientBalanceError,
    AuthorizationError,
    InvalidStateTransitionError,
)
from ptoflow.models.holiday import Holiday
from ptoflow.models.leave_balance import LeaveBalance
from ptoflow.models.leave_request import LeaveRequest, LeaveApproval, LeaveStatus, ApprovalStatus
from ptoflow.models.leave_transaction import LeaveTransaction
from ptoflow.schemas.leave_request import LeaveRequestCreate
from ptoflow.services.approval_service import approve_leave_request
from ptoflow.services.leave_service import (
    submit_leave_request,
    cancel_leave_request,
    can_cancel,
    get_leave_request,
)

from conftest import NOW, TODAY, next_business_day, create_policy

START = next_business_day(TODAY, skip=1)  # Wednesday 2030-03-06


def leave_data(leave_type_id, start=START, end=None, total_days="1", day_options=None, reason="Family trip"):
    return LeaveRequestCreate(
        leave_type_id=leave_type_id,
        start_date=start,
        end_date=end or start,
        total_days=Decimal(total_days),
        reason=reason,
        day_options=day_options or [],
    )


async def _balance(db: AsyncSession, user_id, leave_type_id, year=START.year):
    result = await db.execute(
        select(LeaveBalance)
        .where(
            LeaveBalance.user_id == user_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _count(db: AsyncSession, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar()


def _error_fields(exc: ValidationError) -> set:
    return {error["field"] for error in exc.errors}


@pytest.mark.asyncio
async def test_submit_creates_pending_request_with_reservation(
    db, service_db, employee, manager, single_level_type, vacation_policy
):
    leave_request = await submit_leave_request(
        service_db, employee,
        leave_data(single_level_type.id, end=next_business_day(START), total_days="2"),
        now=NOW,
    )

    assert leave_request.status == LeaveStatus.PENDING
    assert leave_request.total_days == Decimal("2")
    assert leave_request.submitted_at is not None
    assert re.fullmatch(rf"PTO-U{employee.id}-\d+", leave_request.request_number)

    balance = await _balance(db, employee.id, single_level_type.id)
    assert balance.balance == Decimal("5")
    assert balance.pending_balance == Decimal("2")

    loaded = await get_leave_request(db, leave_request.id)
    assert [(a.approver_id, a.level, a.sequence, a.status) for a in loaded.approvals] == [
        (manager.id, 1, 1, ApprovalStatus.PENDING)
    ]


@pytest.mark.asyncio
async def test_submit_insufficient_balance_writes_nothing(db, service_db, employee, single_level_type, vacation_policy):
    end = next_business_day(START, skip=5)
    with pytest.raises(InsufficientBalanceError) as exc_info:
        await submit_leave_request(
            service_db, employee, leave_data(single_level_type.id, end=end, total_days="6"), now=NOW
        )

    assert exc_info.value.status_code == 422
    assert exc_info.value.detail["available"] == 5.0
    assert exc_info.value.detail["requested"] == 6.0
    assert await _count(db, LeaveRequest) == 0
    assert await _count(db, LeaveBalance) == 0
    assert await _count(db, LeaveApproval) == 0


@pytest.mark.asyncio
async def test_submit_insufficient_balance_leaves_existing_row_untouched(
    db, service_db, employee, single_level_type, vacation_policy
):
    await submit_leave_request(service_db, employee, leave_data(single_level_type.id, total_days="1"), now=NOW)

    with pytest.raises(InsufficientBalanceError) as exc_info:
        await submit_leave_request(
            service_db, employee,
            leave_data(
                single_level_type.id,
                start=next_business_day(START),
                end=next_business_day(START, skip=5),
                total_days="4.5",
            ),
            now=NOW,
        )

    assert exc_info.value.available == Decimal("4")
    balance = await _balance(db, employee.id, single_level_type.id)
    assert balance.pending_balance == Decimal("1")
    assert await _count(db, LeaveRequest) == 1


@pytest.mark.asyncio
async def test_submit_without_policy_has_no_balance(service_db, employee, single_level_type):
    with pytest.raises(InsufficientBalanceError) as exc_info:
        await submit_leave_request(service_db, employee, leave_data(single_level_type.id), now=NOW)
    assert exc_info.value.available == Decimal("0")


@pytest.mark.asyncio
async def test_submit_rejects_weekend_dates(db, service_db, employee, single_level_type, vacation_policy):
    saturday = START + timedelta(days=(5 - START.weekday()))
    assert saturday.weekday() == 5

    with pytest.raises(ValidationError) as exc_info:
        await submit_leave_request(
            service_db, employee, leave_data(single_level_type.id, end=saturday, total_days="3"), now=NOW
        )

    assert "end_date" in _error_fields(exc_info.value)
    assert exc_info.value.status_code == 422
    assert await _count(db, LeaveRequest) == 0


@pytest.mark.asyncio
async def test_submit_rejects_past_start_and_small_total(service_db, employee, single_level_type, vacation_policy):
    last_friday = TODAY - timedelta(days=3)
    with pytest.raises(ValidationError) as exc_info:
        await submit_leave_request(
            service_db, employee,
            leave_data(single_level_type.id, start=last_friday, end=START, total_days="0.25"),
            now=NOW,
        )

    assert {"start_date", "total_days"} <= _error_fields(exc_info.value)


@pytest.mark.asyncio
async def test_submit_rejects_day_options_outside_range(service_db, employee, single_level_type, vacation_policy):
    outside = next_business_day(START, skip=3)
    with pytest.raises(ValidationError) as exc_info:
        await submit_leave_request(
            service_db, employee,
            leave_data(single_level_type.id, day_options=[{"date": outside, "type": "full"}]),
            now=NOW,
        )
    assert "day_options.0.date" in _error_fields(exc_info.value)


@pytest.mark.asyncio
async def test_submit_rejects_repeated_day_option_dates(db, service_db, employee, single_level_type, vacation_policy):
    with pytest.raises(ValidationError) as exc_info:
        await submit_leave_request(
            service_db, employee,
            leave_data(
                single_level_type.id,
                day_options=[{"date": START, "type": "full"}] * 3,
            ),
            now=NOW,
        )

    fields = _error_fields(exc_info.value)
    assert "day_options.0.date" not in fields
    assert {"day_options.1.date", "day_options.2.date"} <= fields
    assert {"field": "day_options.1.date", "message": "Duplicate day option date."} in exc_info.value.errors
    assert await _count(db, LeaveRequest) == 0
    assert await _count(db, LeaveBalance) == 0


@pytest.mark.asyncio
async def test_submit_rejects_inactive_leave_type(db, service_db, employee, single_level_type, vacation_policy):
    single_level_type.is_active = False
    await db.commit()

    with pytest.raises(ValidationError) as exc_info:
        await submit_leave_request(service_db, employee, leave_data(single_level_type.id), now=NOW)
    assert "leave_type_id" in _error_fields(exc_info.value)


@pytest.mark.asyncio
async def test_submit_unknown_leave_type_is_not_found(service_db, employee):
    with pytest.raises(HTTPException) as exc_info:
        await submit_leave_request(service_db, employee, leave_data(uuid.uuid4()), now=NOW)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_submit_without_any_approver_is_rejected(db, service_db, outsider, single_level_type):
    await create_policy(db, outsider, single_level_type)

    with pytest.raises(ValidationError) as exc_info:
        await submit_leave_request(service_db, outsider, leave_data(single_level_type.id), now=NOW)

    assert "approvers" in _error_fields(exc_info.value)
    assert await _count(db, LeaveRequest) == 0
    assert await _count(db, LeaveBalance) == 0


@pytest.mark.asyncio
async def test_day_options_recompute_total_and_skip_holidays(
    db, service_db, employee, single_level_type, vacation_policy
):
    second = next_business_day(START)
    third = next_business_day(START, skip=1)
    db.add(Holiday(id=uuid.uuid4(), name="Company Day", date=third, is_active=True))
    await db.commit()

    leave_request = await submit_leave_request(
        service_db, employee,
        leave_data(
            single_level_type.id, end=third, total_days="3",
            day_options=[
                {"date": START, "type": "full"},
                {"date": second, "type": "half"},
                {"date": third, "type": "full"},
            ],
        ),
        now=NOW,
    )

    assert leave_request.total_days == Decimal("1.5")
    balance = await _balance(db, employee.id, single_level_type.id)
    assert balance.pending_balance == Decimal("1.5")


@pytest.mark.asyncio
async def test_day_options_only_on_holidays_are_rejected(db, service_db, employee, single_level_type, vacation_policy):
    db.add(Holiday(id=uuid.uuid4(), name="Company Day", date=START, is_active=True))
    await db.commit()

    with pytest.raises(ValidationError) as exc_info:
        await submit_leave_request(
            service_db, employee,
            leave_data(single_level_type.id, day_options=[{"date": START, "type": "full"}]),
            now=NOW,
        )
    assert "day_options" in _error_fields(exc_info.value)


@pytest.mark.asyncio
async def test_cancel_pending_releases_reservation(db, service_db, employee, single_level_type, vacation_policy):
    leave_request = await submit_leave_request(
        service_db, employee,
        leave_data(single_level_type.id, end=next_business_day(START), total_days="2"),
        now=NOW,
    )

    cancelled = await cancel_leave_request(service_db, leave_request.id, employee, now=NOW)

    assert cancelled.status == LeaveStatus.CANCELLED
    assert cancelled.reason == f"Cancelled by user {employee.name}"
    balance = await _balance(db, employee.id, single_level_type.id)
    assert balance.pending_balance == Decimal("0")
    assert balance.balance == Decimal("5")


@pytest.mark.asyncio
async def test_cancel_approved_refunds_balance(db, service_db, employee, manager, single_level_type, vacation_policy):
    leave_request = await submit_leave_request(
        service_db, employee, leave_data(single_level_type.id, total_days="1"), now=NOW
    )
    await approve_leave_request(service_db, leave_request.id, manager, now=NOW)

    cancelled = await cancel_leave_request(service_db, leave_request.id, employee, now=NOW)

    assert cancelled.status == LeaveStatus.CANCELLED
    balance = await _balance(db, employee.id, single_level_type.id)
    assert balance.balance == Decimal("6")
    assert balance.used_balance == Decimal("-1")
    assert balance.pending_balance == Decimal("1")


@pytest.mark.asyncio
async def test_cancel_by_manager_and_admin_is_allowed(
    service_db, employee, manager, admin, single_level_type, vacation_policy
):
    first = await submit_leave_request(service_db, employee, leave_data(single_level_type.id), now=NOW)
    second = await submit_leave_request(
        service_db, employee, leave_data(single_level_type.id, start=next_business_day(START)), now=NOW
    )

    assert (await cancel_leave_request(service_db, first.id, manager, now=NOW)).status == LeaveStatus.CANCELLED
    assert (await cancel_leave_request(service_db, second.id, admin, now=NOW)).status == LeaveStatus.CANCELLED


@pytest.mark.asyncio
async def test_cancel_by_unrelated_user_is_forbidden(
    db, service_db, employee, outsider, single_level_type, vacation_policy
):
    leave_request = await submit_leave_request(service_db, employee, leave_data(single_level_type.id), now=NOW)
    request_id = leave_request.id

    with pytest.raises(AuthorizationError):
        await cancel_leave_request(service_db, request_id, outsider, now=NOW)

    reloaded = await get_leave_request(db, request_id)
    assert reloaded.status == LeaveStatus.PENDING


@pytest.mark.asyncio
async def test_cancel_twice_is_invalid_transition(db, service_db, employee, single_level_type, vacation_policy):
    leave_request = await submit_leave_request(service_db, employee, leave_data(single_level_type.id), now=NOW)
    request_id = leave_request.id
    await cancel_leave_request(service_db, request_id, employee, now=NOW)

    with pytest.raises(InvalidStateTransitionError):
        await cancel_leave_request(service_db, request_id, employee, now=NOW)

    balance = await _balance(db, employee.id, single_level_type.id)
    assert balance.pending_balance == Decimal("0")


@pytest.mark.asyncio
async def test_cancellation_window_for_approved_requests(
    db, service_db, employee, manager, single_level_type, vacation_policy
):
    leave_request = await submit_leave_request(service_db, employee, leave_data(single_level_type.id), now=NOW)
    request_id = leave_request.id
    await approve_leave_request(service_db, request_id, manager, now=NOW)
    loaded = await get_leave_request(db, request_id)

    exactly_24_hours = datetime.combine(START - timedelta(days=1), datetime.min.time())
    just_inside = exactly_24_hours + timedelta(minutes=1)

    assert can_cancel(loaded, exactly_24_hours) is True
    assert can_cancel(loaded, just_inside) is False

    with pytest.raises(InvalidStateTransitionError):
        await cancel_leave_request(service_db, request_id, employee, now=just_inside)

    cancelled = await cancel_leave_request(service_db, request_id, employee, now=exactly_24_hours)
    assert cancelled.status == LeaveStatus.CANCELLED


@pytest.mark.asyncio
async def test_pending_request_can_be_cancelled_on_its_start_date(
    service_db, employee, single_level_type, vacation_policy
):
    leave_request = await submit_leave_request(service_db, employee, leave_data(single_level_type.id), now=NOW)
    on_start = datetime.combine(START, datetime.min.time()) + timedelta(hours=10)

    cancelled = await cancel_leave_request(service_db, leave_request.id, employee, now=on_start)
    assert cancelled.status == LeaveStatus.CANCELLED


@pytest.mark.asyncio
async def test_cancel_synthesizes_missing_balance_row(
    db, service_db, employee, manager, single_level_type, vacation_policy
):
    leave_request = await submit_leave_request(service_db, employee, leave_data(single_level_type.id), now=NOW)
    await approve_leave_request(service_db, leave_request.id, manager, now=NOW)

    # Ledger row removed out of band
    balance = await _balance(db, employee.id, single_level_type.id)
    original_id = balance.id
    await db.execute(delete(LeaveTransaction).where(LeaveTransaction.leave_balance_id == original_id))
    await db.execute(delete(LeaveBalance).where(LeaveBalance.id == original_id))
    await db.commit()

    await cancel_leave_request(service_db, leave_request.id, employee, now=NOW)

    recreated = await _balance(db, employee.id, single_level_type.id)
    assert recreated.id != original_id
    assert recreated.balance == Decimal("6")
    assert recreated.pending_balance == Decimal("0")


@pytest.mark.asyncio
async def test_ledger_year_follows_start_date(db, service_db, employee, single_level_type, vacation_policy):
    next_year_start = next_business_day(date(TODAY.year, 12, 31))
    await submit_leave_request(
        service_db, employee, leave_data(single_level_type.id, start=next_year_start), now=NOW
    )

    assert await _balance(db, employee.id, single_level_type.id, year=TODAY.year) is None
    balance = await _balance(db, employee.id, single_level_type.id, year=next_year_start.year)
    assert balance.pending_balance == Decimal("1")
