from sqlalchemy import Column, String, ForeignKey, DateTime, Integer, Enum, Index, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from ptoflow.core.database import Base


class TransactionType(str, enum.Enum):
    RESERVATION = "reservation"
    RELEASE = "release"
    REFUND = "refund"
    ADJUSTMENT = "adjustment"


class LeaveTransaction(Base):
    """Append-only record of every change applied to a LeaveBalance row."""
    __tablename__ = "leave_transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    leave_balance_id = Column(UUID(as_uuid=True), ForeignKey("leave_balances.id"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    leave_type_id = Column(UUID(as_uuid=True), ForeignKey("leave_types.id"), nullable=False)
    leave_request_id = Column(UUID(as_uuid=True), ForeignKey("leave_requests.id"), nullable=True, index=True)
    year = Column(Integer, nullable=False)
    type = Column(Enum(TransactionType, values_callable=lambda x: [e.value for e in x]), nullable=False)
    amount = Column(Numeric(8, 2), nullable=False)
    balance_before = Column(Numeric(8, 2), nullable=False)
    balance_after = Column(Numeric(8, 2), nullable=False)
    pending_before = Column(Numeric(8, 2), nullable=False)
    pending_after = Column(Numeric(8, 2), nullable=False)
    description = Column(String(500), nullable=True)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    leave_balance = relationship("LeaveBalance")
    created_by = relationship("User", foreign_keys=[created_by_id])

    __table_args__ = (
        Index("idx_leave_transactions_user_type_year", "user_id", "leave_type_id", "year"),
    )
