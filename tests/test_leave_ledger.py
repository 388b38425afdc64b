"""
Tests for the balance ledger and policy resolution.
"""
import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ptoflow.models.leave_balance import LeaveBalance
from ptoflow.models.leave_transaction import LeaveTransaction, TransactionType
from ptoflow.services import leave_ledger_service as ledger
from ptoflow.services.leave_policy_service import (
    resolve_available_days,
    policy_default,
    get_balance_overview,
)

from conftest import TODAY, create_policy

YEAR = TODAY.year


async def _balance_rows(db: AsyncSession, user_id) -> list[LeaveBalance]:
    result = await db.execute(select(LeaveBalance).where(LeaveBalance.user_id == user_id))
    return list(result.scalars().all())


async def _transactions(db: AsyncSession, user_id) -> list[LeaveTransaction]:
    result = await db.execute(
        select(LeaveTransaction).where(LeaveTransaction.user_id == user_id)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_reserve_creates_row_from_policy_default(db, employee, single_level_type, vacation_policy):
    balance = await ledger.reserve(db, employee.id, single_level_type.id, YEAR, Decimal("2"), today=TODAY)
    await db.commit()

    assert balance.balance == Decimal("5")
    assert balance.pending_balance == Decimal("2")
    assert balance.used_balance == Decimal("0")
    assert balance.available == Decimal("3")


@pytest.mark.asyncio
async def test_reserve_on_existing_row_only_touches_pending(db, employee, single_level_type, vacation_policy):
    await ledger.reserve(db, employee.id, single_level_type.id, YEAR, Decimal("1"), today=TODAY)
    balance = await ledger.reserve(db, employee.id, single_level_type.id, YEAR, Decimal("1.5"), today=TODAY)
    await db.commit()

    assert balance.balance == Decimal("5")
    assert balance.pending_balance == Decimal("2.5")
    rows = await _balance_rows(db, employee.id)
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_reserve_without_policy_starts_from_zero(db, employee, single_level_type):
    balance = await ledger.reserve(db, employee.id, single_level_type.id, YEAR, Decimal("1"), today=TODAY)
    assert balance.balance == Decimal("0")
    assert balance.pending_balance == Decimal("1")


@pytest.mark.asyncio
async def test_release_pending_restores_previous_value(db, employee, single_level_type, vacation_policy):
    await ledger.reserve(db, employee.id, single_level_type.id, YEAR, Decimal("2"), today=TODAY)
    balance = await ledger.release_pending(db, employee.id, single_level_type.id, YEAR, Decimal("2"), today=TODAY)

    assert balance.pending_balance == Decimal("0")
    assert balance.balance == Decimal("5")


@pytest.mark.asyncio
async def test_release_pending_on_synthesized_row_does_not_go_negative(db, employee, single_level_type, vacation_policy):
    balance = await ledger.release_pending(db, employee.id, single_level_type.id, YEAR, Decimal("2"), today=TODAY)

    assert balance.balance == Decimal("5")
    assert balance.pending_balance == Decimal("0")


@pytest.mark.asyncio
async def test_consume_refunds_balance_and_reduces_used(db, employee, single_level_type, vacation_policy):
    balance = await ledger.consume(db, employee.id, single_level_type.id, YEAR, Decimal("2"), today=TODAY)

    assert balance.balance == Decimal("7")
    assert balance.used_balance == Decimal("-2")
    assert balance.pending_balance == Decimal("0")


@pytest.mark.asyncio
async def test_available_is_none_without_row(db, employee, single_level_type):
    assert await ledger.available(db, employee.id, single_level_type.id, YEAR) is None


@pytest.mark.asyncio
async def test_available_is_balance_minus_pending(db, employee, single_level_type, vacation_policy):
    await ledger.reserve(db, employee.id, single_level_type.id, YEAR, Decimal("0.5"), today=TODAY)
    await db.commit()

    assert await ledger.available(db, employee.id, single_level_type.id, YEAR) == Decimal("4.5")


@pytest.mark.asyncio
async def test_adjust_changes_balance_and_is_not_bounded(db, employee, single_level_type, admin):
    balance = await ledger.adjust(
        db, employee.id, single_level_type.id, YEAR, Decimal("-3"),
        description="Correction", actor_id=admin.id,
    )
    assert balance.balance == Decimal("-3")
    assert balance.available == Decimal("-3")


@pytest.mark.asyncio
async def test_every_mutation_is_recorded(db, employee, single_level_type, vacation_policy, admin):
    await ledger.reserve(db, employee.id, single_level_type.id, YEAR, Decimal("2"), today=TODAY)
    await ledger.release_pending(db, employee.id, single_level_type.id, YEAR, Decimal("2"), today=TODAY)
    await ledger.consume(db, employee.id, single_level_type.id, YEAR, Decimal("1"), today=TODAY)
    await ledger.adjust(db, employee.id, single_level_type.id, YEAR, Decimal("1"), "Bonus day", actor_id=admin.id)
    await db.commit()

    transactions = await _transactions(db, employee.id)
    by_type = {t.type: t for t in transactions}
    assert set(by_type) == {
        TransactionType.RESERVATION,
        TransactionType.RELEASE,
        TransactionType.REFUND,
        TransactionType.ADJUSTMENT,
    }

    reservation = by_type[TransactionType.RESERVATION]
    assert reservation.pending_before == Decimal("0")
    assert reservation.pending_after == Decimal("2")
    assert reservation.balance_before == reservation.balance_after == Decimal("5")

    refund = by_type[TransactionType.REFUND]
    assert refund.balance_before == Decimal("5")
    assert refund.balance_after == Decimal("6")

    assert by_type[TransactionType.ADJUSTMENT].created_by_id == admin.id


@pytest.mark.asyncio
async def test_resolve_uses_policy_when_no_row(db, employee, single_level_type, vacation_policy):
    assert await resolve_available_days(db, employee.id, single_level_type.id, YEAR, today=TODAY) == Decimal("5")
    # Pure read
    assert await _balance_rows(db, employee.id) == []


@pytest.mark.asyncio
async def test_resolve_is_zero_without_row_or_policy(db, employee, single_level_type):
    assert await resolve_available_days(db, employee.id, single_level_type.id, YEAR, today=TODAY) == Decimal("0")


@pytest.mark.asyncio
async def test_resolve_prefers_existing_row_over_policy(db, employee, single_level_type, vacation_policy):
    await ledger.reserve(db, employee.id, single_level_type.id, YEAR, Decimal("3"), today=TODAY)
    await db.commit()

    assert await resolve_available_days(db, employee.id, single_level_type.id, YEAR, today=TODAY) == Decimal("2")


@pytest.mark.asyncio
async def test_inactive_and_expired_policies_are_ignored(db, employee, single_level_type):
    await create_policy(db, employee, single_level_type, days=Decimal("9"), is_active=False)
    await create_policy(db, employee, single_level_type, days=Decimal("8"), end_date=date(2021, 1, 1))
    await create_policy(db, employee, single_level_type, days=Decimal("7"), effective_date=date(2099, 1, 1))

    assert await policy_default(db, employee.id, single_level_type.id, TODAY) == Decimal("0")


@pytest.mark.asyncio
async def test_balance_overview_mixes_rows_and_policy_defaults(
    db, employee, single_level_type, multi_level_type, vacation_policy, personal_policy
):
    await ledger.reserve(db, employee.id, single_level_type.id, YEAR, Decimal("1"), today=TODAY)
    await db.commit()

    overview = await get_balance_overview(db, employee.id, YEAR, today=TODAY)
    by_code = {summary.leave_type_code: summary for summary in overview.balances}

    assert by_code["VACA"].has_balance_record is True
    assert by_code["VACA"].available == Decimal("4")
    assert by_code["PERS"].has_balance_record is False
    assert by_code["PERS"].available == Decimal("5")


@pytest.mark.asyncio
async def test_balance_overview_omits_types_without_row_or_policy(db, employee, single_level_type):
    overview = await get_balance_overview(db, employee.id, YEAR, today=TODAY)
    assert overview.balances == []


@pytest.mark.asyncio
async def test_apply_balance_adjustment_rejects_unknown_user(db, single_level_type, admin):
    from fastapi import HTTPException
    from ptoflow.schemas.leave_balance import BalanceAdjustmentRequest

    with pytest.raises(HTTPException) as exc_info:
        await ledger.apply_balance_adjustment(
            db,
            BalanceAdjustmentRequest(
                user_id=uuid.uuid4(),
                leave_type_id=single_level_type.id,
                year=YEAR,
                amount=Decimal("1"),
                description="Missing user",
            ),
            admin,
        )
    assert exc_info.value.status_code == 404
