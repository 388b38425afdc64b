from sqlalchemy import Column, String, DateTime, Boolean, Integer, JSON, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from ptoflow.core.database import Base


class LeaveType(Base):
    """A category of time off together with its approval-chain configuration."""
    __tablename__ = "leave_types"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    code = Column(String(20), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    color = Column(String(20), nullable=True)
    multi_level_approval = Column(Boolean, nullable=False, default=False)
    disable_hierarchy_approval = Column(Boolean, nullable=False, default=False)
    # Ordered list of user ids (as strings)
    specific_approvers = Column(JSON, nullable=False, default=list)
    show_in_department_calendar = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    policies = relationship("LeavePolicy", back_populates="leave_type")
    requests = relationship("LeaveRequest", back_populates="leave_type")

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.code})" if self.code else self.name

    @property
    def approver_ids(self) -> list[uuid.UUID]:
        return [uuid.UUID(str(approver_id)) for approver_id in (self.specific_approvers or [])]
