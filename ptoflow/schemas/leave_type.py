from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID


class LeaveTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)
    multi_level_approval: bool = False
    disable_hierarchy_approval: bool = False
    specific_approvers: List[UUID] = Field(default_factory=list)
    show_in_department_calendar: bool = True
    sort_order: Optional[int] = None


class LeaveTypeResponse(BaseModel):
    id: UUID
    name: str
    code: str
    description: Optional[str] = None
    color: Optional[str] = None
    multi_level_approval: bool
    disable_hierarchy_approval: bool
    specific_approvers: List[UUID] = Field(default_factory=list)
    show_in_department_calendar: bool
    is_active: bool
    sort_order: int

    class Config:
        from_attributes = True


class LeavePolicyCreate(BaseModel):
    user_id: UUID
    leave_type_id: UUID
    initial_days: Decimal = Field(Decimal("0"), ge=0, max_digits=8, decimal_places=2)
    annual_accrual_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=8, decimal_places=2)
    rollover_enabled: bool = False
    max_rollover_days: Optional[Decimal] = Field(None, ge=0, max_digits=8, decimal_places=2)
    effective_date: date
    end_date: Optional[date] = None

    @model_validator(mode='after')
    def validate_date_range(self):
        """Validate that end_date, when set, does not precede effective_date."""
        if self.end_date is not None and self.end_date < self.effective_date:
            raise ValueError("end_date must be on or after effective_date")
        return self


class LeavePolicyResponse(BaseModel):
    id: UUID
    user_id: UUID
    leave_type_id: UUID
    initial_days: Decimal
    annual_accrual_amount: Decimal
    rollover_enabled: bool
    max_rollover_days: Optional[Decimal] = None
    effective_date: date
    end_date: Optional[date] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class HolidayCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    date: date


class HolidayResponse(BaseModel):
    id: UUID
    name: str
    date: date
    is_active: bool

    class Config:
        from_attributes = True
