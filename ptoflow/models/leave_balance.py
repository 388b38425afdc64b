from sqlalchemy import Column, ForeignKey, DateTime, Integer, Numeric, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from ptoflow.core.database import Base


class LeaveBalance(Base):
    """
    Running totals for one (user, leave type, year).

    ``balance`` excludes pending reservations; available = balance - pending_balance.
    """
    __tablename__ = "leave_balances"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    leave_type_id = Column(UUID(as_uuid=True), ForeignKey("leave_types.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    balance = Column(Numeric(8, 2), nullable=False, default=0)
    pending_balance = Column(Numeric(8, 2), nullable=False, default=0)
    used_balance = Column(Numeric(8, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    user = relationship("User")
    leave_type = relationship("LeaveType")

    __table_args__ = (
        UniqueConstraint("user_id", "leave_type_id", "year", name="uq_leave_balance_user_type_year"),
    )

    @property
    def available(self):
        return self.balance - self.pending_balance
