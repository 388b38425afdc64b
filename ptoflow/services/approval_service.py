"""
Approval processing for leave requests.

Each approval row moves pending -> approved | denied exactly once through a
compare-and-set UPDATE. The parent request is locked while its remaining
pending rows are counted, and its own terminal transition is also a
compare-and-set, so concurrent final approvals finish the request once.
"""
from typing import Optional, List, Tuple
from uuid import UUID
from datetime import datetime
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_, func
from fastapi import HTTPException

from ptoflow.core.error_handling import (
    ValidationError,
    AuthorizationError,
    InvalidStateTransitionError,
    PersistenceError,
)
from ptoflow.core.query_builder import get_paginated_results, filter_by_status
from ptoflow.models.leave_request import LeaveRequest, LeaveApproval, LeaveStatus, ApprovalStatus
from ptoflow.models.user import User
from ptoflow.services import leave_ledger_service as ledger
from ptoflow.services.leave_service import get_leave_request, leave_request_loader_options
from ptoflow.services.timezone_service import company_now

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000

NOT_AUTHORIZED_MESSAGE = "You are not authorized to approve this request or it has already been processed."


def _clean_comments(comments: Optional[str], required: bool) -> Optional[str]:
    comments = comments.strip() if comments else None
    if required and not comments:
        raise ValidationError.for_field("comments", "Comments are required when denying a request.")
    if comments and len(comments) > MAX_COMMENT_LENGTH:
        raise ValidationError.for_field(
            "comments", f"Comments may not exceed {MAX_COMMENT_LENGTH} characters."
        )
    return comments


async def _find_pending_approval(
    db: AsyncSession,
    request_id: UUID,
    approver_id: UUID,
) -> Optional[LeaveApproval]:
    result = await db.execute(
        select(LeaveApproval)
        .where(
            and_(
                LeaveApproval.leave_request_id == request_id,
                LeaveApproval.approver_id == approver_id,
                LeaveApproval.status == ApprovalStatus.PENDING,
            )
        )
        .order_by(LeaveApproval.sequence)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _record_decision(
    db: AsyncSession,
    approval: LeaveApproval,
    decision: ApprovalStatus,
    comments: Optional[str],
    now: datetime,
) -> None:
    result = await db.execute(
        update(LeaveApproval)
        .where(and_(LeaveApproval.id == approval.id, LeaveApproval.status == ApprovalStatus.PENDING))
        .values(status=decision, comments=comments, responded_at=now)
    )
    if result.rowcount != 1:
        raise InvalidStateTransitionError("This approval has already been processed.")


async def _transition_request(
    db: AsyncSession,
    request_id: UUID,
    to_status: LeaveStatus,
    **values,
) -> None:
    result = await db.execute(
        update(LeaveRequest)
        .where(and_(LeaveRequest.id == request_id, LeaveRequest.status == LeaveStatus.PENDING))
        .values(status=to_status, **values)
    )
    if result.rowcount != 1:
        raise InvalidStateTransitionError("This leave request is no longer pending.")


async def count_pending_approvals(db: AsyncSession, request_id: UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(LeaveApproval)
        .where(
            and_(
                LeaveApproval.leave_request_id == request_id,
                LeaveApproval.status == ApprovalStatus.PENDING,
            )
        )
    )
    return result.scalar() or 0


async def _load_for_decision(
    db: AsyncSession,
    request_id: UUID,
    approver: User,
) -> Tuple[LeaveRequest, LeaveApproval]:
    leave_request = await get_leave_request(db, request_id, for_update=True)

    approval = await _find_pending_approval(db, request_id, approver.id)
    if approval is None:
        raise AuthorizationError(NOT_AUTHORIZED_MESSAGE)

    if leave_request.status != LeaveStatus.PENDING:
        raise InvalidStateTransitionError(
            f"This leave request has already been {leave_request.status.value}."
        )
    return leave_request, approval


async def approve_leave_request(
    db: AsyncSession,
    request_id: UUID,
    approver: User,
    comments: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LeaveRequest:
    """
    Record one approver's approval.

    The request becomes approved once no approval rows remain pending. The
    ledger is not touched; reserved days stay in pending_balance.
    """
    comments = _clean_comments(comments, required=False)
    now = company_now(now)

    try:
        leave_request, approval = await _load_for_decision(db, request_id, approver)
        await _record_decision(db, approval, ApprovalStatus.APPROVED, comments, now)

        remaining = await count_pending_approvals(db, request_id)
        if remaining == 0:
            await _transition_request(db, request_id, LeaveStatus.APPROVED, approved_at=now)

        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.error(f"Failed to approve leave request {request_id}", exc_info=True)
        raise PersistenceError("approve leave request")

    if remaining == 0:
        logger.info(f"Leave request {leave_request.request_number} approved (final approval by user {approver.id})")
    else:
        logger.info(
            f"Leave request {leave_request.request_number} approved by user {approver.id}; "
            f"{remaining} approval(s) remaining"
        )
    return leave_request


async def deny_leave_request(
    db: AsyncSession,
    request_id: UUID,
    approver: User,
    comments: str,
    now: Optional[datetime] = None,
) -> LeaveRequest:
    """
    Record a denial. One denial ends the request.

    Other approvers' rows stay pending. The request's reserved days are
    released back to the balance.
    """
    comments = _clean_comments(comments, required=True)
    now = company_now(now)

    try:
        leave_request, approval = await _load_for_decision(db, request_id, approver)
        await _record_decision(db, approval, ApprovalStatus.DENIED, comments, now)
        await _transition_request(
            db, request_id, LeaveStatus.DENIED, denied_at=now, denial_reason=comments
        )

        await ledger.release_pending(
            db, leave_request.user_id, leave_request.leave_type_id,
            leave_request.start_date.year, leave_request.total_days,
            leave_request_id=leave_request.id, actor_id=approver.id, today=now.date(),
            description="Released pending days from denied request",
        )

        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.error(f"Failed to deny leave request {request_id}", exc_info=True)
        raise PersistenceError("deny leave request")

    logger.info(f"Leave request {leave_request.request_number} denied by user {approver.id}")
    return leave_request


async def get_approver_requests(
    db: AsyncSession,
    approver_id: UUID,
    status_filter: Optional[LeaveStatus] = None,
    skip: int = 0,
    limit: int = 100,
) -> Tuple[List[LeaveRequest], int]:
    """Requests in which the user holds an approval row, newest first."""
    approver_request_ids = select(LeaveApproval.leave_request_id).where(
        LeaveApproval.approver_id == approver_id
    )
    query = select(LeaveRequest).where(LeaveRequest.id.in_(approver_request_ids))
    if status_filter:
        query = filter_by_status(query, LeaveRequest, status_filter)

    return await get_paginated_results(
        db,
        query,
        skip=skip,
        limit=limit,
        order_by=LeaveRequest.submitted_at.desc(),
        options=leave_request_loader_options(),
    )
