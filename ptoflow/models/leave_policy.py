from sqlalchemy import Column, ForeignKey, DateTime, Date, Boolean, Numeric, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from ptoflow.core.database import Base


class LeavePolicy(Base):
    """Per-user, per-leave-type accrual policy. Seeds a ledger row that does not exist yet."""
    __tablename__ = "leave_policies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    leave_type_id = Column(UUID(as_uuid=True), ForeignKey("leave_types.id"), nullable=False, index=True)
    initial_days = Column(Numeric(8, 2), nullable=False, default=0)
    annual_accrual_amount = Column(Numeric(8, 2), nullable=False, default=0)
    rollover_enabled = Column(Boolean, nullable=False, default=False)
    max_rollover_days = Column(Numeric(8, 2), nullable=True)
    effective_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    user = relationship("User", back_populates="leave_policies")
    leave_type = relationship("LeaveType", back_populates="policies")

    __table_args__ = (
        Index("idx_leave_policies_user_type", "user_id", "leave_type_id"),
    )
