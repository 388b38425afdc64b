from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from datetime import datetime

from ptoflow.core.database import get_db
from ptoflow.core.dependencies import get_current_user, get_current_admin
from ptoflow.core.error_handling import handle_endpoint_errors, parse_uuid, AuthorizationError
from ptoflow.models.user import User
from ptoflow.models.leave_request import LeaveRequest, LeaveStatus
from ptoflow.schemas.leave_request import (
    LeaveRequestCreate,
    LeaveCancelRequest,
    LeaveApproveRequest,
    LeaveDenyRequest,
    LeaveApprovalResponse,
    LeaveRequestResponse,
    LeaveRequestListResponse,
)
from ptoflow.schemas.leave_type import (
    LeaveTypeCreate,
    LeaveTypeResponse,
    HolidayCreate,
    HolidayResponse,
)
from ptoflow.services.leave_service import (
    submit_leave_request,
    cancel_leave_request,
    get_leave_request,
    get_my_leave_requests,
    can_cancel,
    can_view,
)
from ptoflow.services.approval_service import (
    approve_leave_request,
    deny_leave_request,
    get_approver_requests,
)
from ptoflow.services.leave_type_service import get_active_leave_types, create_leave_type
from ptoflow.services.holiday_service import get_holidays, create_holiday
from ptoflow.services.timezone_service import company_now

router = APIRouter()


def build_leave_request_response(
    leave_request: LeaveRequest,
    now: Optional[datetime] = None,
) -> LeaveRequestResponse:
    """Response model for a request loaded with its owner, leave type and approvals."""
    return LeaveRequestResponse(
        id=leave_request.id,
        request_number=leave_request.request_number,
        user_id=leave_request.user_id,
        user_name=leave_request.user.name if leave_request.user else None,
        leave_type_id=leave_request.leave_type_id,
        leave_type_name=leave_request.leave_type.name if leave_request.leave_type else None,
        start_date=leave_request.start_date,
        end_date=leave_request.end_date,
        total_days=leave_request.total_days,
        reason=leave_request.reason,
        day_options=leave_request.day_options or [],
        status=leave_request.status,
        denial_reason=leave_request.denial_reason,
        submitted_at=leave_request.submitted_at,
        approved_at=leave_request.approved_at,
        denied_at=leave_request.denied_at,
        cancelled_at=leave_request.cancelled_at,
        can_be_cancelled=can_cancel(leave_request, now),
        approvals=[
            LeaveApprovalResponse(
                id=approval.id,
                approver_id=approval.approver_id,
                approver_name=approval.approver.name if approval.approver else None,
                level=approval.level,
                sequence=approval.sequence,
                status=approval.status,
                comments=approval.comments,
                responded_at=approval.responded_at,
            )
            for approval in leave_request.approvals
        ],
        created_at=leave_request.created_at,
        updated_at=leave_request.updated_at,
    )


async def _reload_response(db: AsyncSession, leave_request: LeaveRequest) -> LeaveRequestResponse:
    leave_request = await get_leave_request(db, leave_request.id)
    return build_leave_request_response(leave_request)


@router.post("/requests", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
@handle_endpoint_errors(operation_name="submit_leave_request")
async def submit_leave_request_endpoint(
    data: LeaveRequestCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a leave request for the current user."""
    leave_request = await submit_leave_request(db, current_user, data)
    return await _reload_response(db, leave_request)


@router.get("/requests/my", response_model=LeaveRequestListResponse)
@handle_endpoint_errors(operation_name="get_my_leave_requests")
async def get_my_leave_requests_endpoint(
    status_filter: Optional[LeaveStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get current user's leave requests."""
    requests, total = await get_my_leave_requests(
        db,
        current_user.id,
        status_filter=status_filter,
        skip=skip,
        limit=limit,
    )
    now = company_now()
    return LeaveRequestListResponse(
        requests=[build_leave_request_response(req, now) for req in requests],
        total=total,
    )


@router.get("/requests/{request_id}", response_model=LeaveRequestResponse)
@handle_endpoint_errors(operation_name="get_leave_request")
async def get_leave_request_endpoint(
    request_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a leave request with its approval chain."""
    request_uuid = parse_uuid(request_id, "Leave request ID")
    leave_request = await get_leave_request(db, request_uuid)
    if not can_view(leave_request, current_user):
        raise AuthorizationError("You are not authorized to view this request.")
    return build_leave_request_response(leave_request)


@router.post("/requests/{request_id}/cancel", response_model=LeaveRequestResponse)
@handle_endpoint_errors(operation_name="cancel_leave_request")
async def cancel_leave_request_endpoint(
    request_id: str,
    data: Optional[LeaveCancelRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a pending request, or an approved one before the notice window."""
    request_uuid = parse_uuid(request_id, "Leave request ID")
    leave_request = await cancel_leave_request(db, request_uuid, current_user)
    return await _reload_response(db, leave_request)


@router.post("/requests/{request_id}/approve", response_model=LeaveRequestResponse)
@handle_endpoint_errors(operation_name="approve_leave_request")
async def approve_leave_request_endpoint(
    request_id: str,
    data: Optional[LeaveApproveRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record the current user's approval."""
    request_uuid = parse_uuid(request_id, "Leave request ID")
    comments = data.comments if data else None
    leave_request = await approve_leave_request(db, request_uuid, current_user, comments)
    return await _reload_response(db, leave_request)


@router.post("/requests/{request_id}/deny", response_model=LeaveRequestResponse)
@handle_endpoint_errors(operation_name="deny_leave_request")
async def deny_leave_request_endpoint(
    request_id: str,
    data: LeaveDenyRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Deny a request. Comments are required."""
    request_uuid = parse_uuid(request_id, "Leave request ID")
    leave_request = await deny_leave_request(db, request_uuid, current_user, data.comments)
    return await _reload_response(db, leave_request)


@router.get("/approvals", response_model=LeaveRequestListResponse)
@handle_endpoint_errors(operation_name="get_approver_requests")
async def get_approver_requests_endpoint(
    status_filter: Optional[LeaveStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Requests waiting on, or already decided by, the current user."""
    requests, total = await get_approver_requests(
        db,
        current_user.id,
        status_filter=status_filter,
        skip=skip,
        limit=limit,
    )
    now = company_now()
    return LeaveRequestListResponse(
        requests=[build_leave_request_response(req, now) for req in requests],
        total=total,
    )


@router.get("/types", response_model=list[LeaveTypeResponse])
@handle_endpoint_errors(operation_name="get_leave_types")
async def get_leave_types_endpoint(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Active leave types."""
    return await get_active_leave_types(db)


@router.post("/types", response_model=LeaveTypeResponse, status_code=status.HTTP_201_CREATED)
@handle_endpoint_errors(operation_name="create_leave_type")
async def create_leave_type_endpoint(
    data: LeaveTypeCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a leave type (admin only)."""
    return await create_leave_type(db, data)


@router.get("/holidays", response_model=list[HolidayResponse])
@handle_endpoint_errors(operation_name="get_holidays")
async def get_holidays_endpoint(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Active company holidays, optionally for one year."""
    return await get_holidays(db, year)


@router.post("/holidays", response_model=HolidayResponse, status_code=status.HTTP_201_CREATED)
@handle_endpoint_errors(operation_name="create_holiday")
async def create_holiday_endpoint(
    data: HolidayCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Add a company holiday (admin only)."""
    return await create_holiday(db, data)
