from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Integer, Enum, Index, Numeric, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from ptoflow.core.database import Base


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not LeaveStatus.PENDING


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class DayOptionType(str, enum.Enum):
    FULL = "full"
    HALF = "half"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_number = Column(String(100), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    leave_type_id = Column(UUID(as_uuid=True), ForeignKey("leave_types.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_days = Column(Numeric(6, 2), nullable=False)
    reason = Column(String(1000), nullable=True)
    day_options = Column(JSON, nullable=False, default=list)
    status = Column(Enum(LeaveStatus, values_callable=lambda x: [e.value for e in x]), nullable=False, default=LeaveStatus.PENDING)
    denial_reason = Column(String(1000), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    denied_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="leave_requests")
    leave_type = relationship("LeaveType", back_populates="requests")
    approvals = relationship(
        "LeaveApproval",
        back_populates="request",
        order_by="LeaveApproval.sequence",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_leave_requests_user_status", "user_id", "status"),
        Index("idx_leave_requests_type_start", "leave_type_id", "start_date"),
    )


class LeaveApproval(Base):
    """One required approval step. Transitions exactly once, pending -> approved|denied."""
    __tablename__ = "leave_approvals"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    leave_request_id = Column(UUID(as_uuid=True), ForeignKey("leave_requests.id"), nullable=False, index=True)
    approver_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    level = Column(Integer, nullable=False, default=1)
    sequence = Column(Integer, nullable=False, default=1)
    status = Column(Enum(ApprovalStatus, values_callable=lambda x: [e.value for e in x]), nullable=False, default=ApprovalStatus.PENDING)
    comments = Column(String(1000), nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    request = relationship("LeaveRequest", back_populates="approvals")
    approver = relationship("User", foreign_keys=[approver_id])

    __table_args__ = (
        UniqueConstraint("leave_request_id", "sequence", name="uq_leave_approval_request_sequence"),
        Index("idx_leave_approvals_approver_status", "approver_id", "status"),
    )
