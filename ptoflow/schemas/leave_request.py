from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from ptoflow.models.leave_request import LeaveStatus, ApprovalStatus, DayOptionType


class DayOption(BaseModel):
    date: date
    type: DayOptionType = DayOptionType.FULL


class LeaveRequestCreate(BaseModel):
    leave_type_id: UUID
    start_date: date
    end_date: date
    total_days: Decimal = Field(..., ge=0, max_digits=6, decimal_places=2)
    reason: Optional[str] = Field(None, max_length=1000)
    day_options: List[DayOption] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_date_range(self):
        """Validate that start_date is before or equal to end_date."""
        if self.start_date > self.end_date:
            raise ValueError("start_date must be before or equal to end_date")
        return self


class LeaveCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class LeaveApproveRequest(BaseModel):
    comments: Optional[str] = Field(None, max_length=1000)


class LeaveDenyRequest(BaseModel):
    comments: str = Field(..., min_length=1, max_length=1000)

    @field_validator('comments')
    @classmethod
    def comments_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("comments are required when denying a request")
        return v.strip()


class LeaveApprovalResponse(BaseModel):
    id: UUID
    approver_id: UUID
    approver_name: Optional[str] = None
    level: int
    sequence: int
    status: ApprovalStatus
    comments: Optional[str] = None
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LeaveRequestResponse(BaseModel):
    id: UUID
    request_number: str
    user_id: UUID
    user_name: Optional[str] = None
    leave_type_id: UUID
    leave_type_name: Optional[str] = None
    start_date: date
    end_date: date
    total_days: Decimal
    reason: Optional[str] = None
    day_options: List[DayOption] = Field(default_factory=list)
    status: LeaveStatus
    denial_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    denied_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    can_be_cancelled: bool = False
    approvals: List[LeaveApprovalResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LeaveRequestListResponse(BaseModel):
    requests: list[LeaveRequestResponse]
    total: int
