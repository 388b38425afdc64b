"""
Approval chain construction for leave requests.

The chain is materialized as LeaveApproval rows when a request is submitted.
Levels group approvers for display; they do not gate the order of decisions.
"""
from typing import List, NamedTuple
from uuid import UUID
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ptoflow.models.leave_request import LeaveRequest, LeaveApproval, ApprovalStatus
from ptoflow.models.leave_type import LeaveType
from ptoflow.models.user import User

MANAGER_LEVEL = 1
SPECIFIC_APPROVER_LEVEL = 2


class ApprovalStep(NamedTuple):
    approver_id: UUID
    level: int
    sequence: int


def build_approval_chain(requester: User, leave_type: LeaveType) -> List[ApprovalStep]:
    """
    Ordered approval steps for a request by ``requester`` of ``leave_type``.

    Single-level types need only the direct manager. Multi-level types add the
    leave type's specific approvers after the manager, or replace the manager
    entirely when hierarchy approval is disabled. An empty list means nobody
    can approve the request.
    """
    manager_id = requester.reports_to_user_id

    if not leave_type.multi_level_approval:
        if manager_id is None:
            return []
        return [ApprovalStep(manager_id, MANAGER_LEVEL, 1)]

    hierarchy_enabled = not leave_type.disable_hierarchy_approval
    approvers: List[tuple[UUID, int]] = []

    if hierarchy_enabled and manager_id is not None:
        approvers.append((manager_id, MANAGER_LEVEL))

    specific_level = SPECIFIC_APPROVER_LEVEL if hierarchy_enabled else MANAGER_LEVEL
    for approver_id in leave_type.approver_ids:
        # One step per person; a manager listed again keeps the manager step
        if any(existing_id == approver_id for existing_id, _ in approvers):
            continue
        approvers.append((approver_id, specific_level))

    return [
        ApprovalStep(approver_id, level, sequence)
        for sequence, (approver_id, level) in enumerate(approvers, start=1)
    ]


def create_approval_records(
    db: AsyncSession,
    leave_request: LeaveRequest,
    steps: List[ApprovalStep],
) -> List[LeaveApproval]:
    approvals = [
        LeaveApproval(
            id=uuid.uuid4(),
            leave_request_id=leave_request.id,
            approver_id=step.approver_id,
            level=step.level,
            sequence=step.sequence,
            status=ApprovalStatus.PENDING,
        )
        for step in steps
    ]
    db.add_all(approvals)
    return approvals
