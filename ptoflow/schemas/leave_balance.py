from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from ptoflow.models.leave_transaction import TransactionType


class LeaveBalanceSummary(BaseModel):
    leave_type_id: UUID
    leave_type_name: str
    leave_type_code: str
    year: int
    balance: Decimal
    pending_balance: Decimal
    used_balance: Decimal
    available: Decimal
    has_balance_record: bool


class LeaveBalanceOverview(BaseModel):
    user_id: UUID
    year: int
    balances: list[LeaveBalanceSummary]


class BalanceAdjustmentRequest(BaseModel):
    user_id: UUID
    leave_type_id: UUID
    year: int = Field(..., ge=2000, le=2100)
    amount: Decimal = Field(..., max_digits=8, decimal_places=2)
    description: str = Field(..., min_length=1, max_length=500)

    @field_validator('amount')
    @classmethod
    def amount_not_zero(cls, v: Decimal) -> Decimal:
        if v == 0:
            raise ValueError("amount must not be zero")
        return v


class LeaveTransactionResponse(BaseModel):
    id: UUID
    leave_type_id: UUID
    leave_request_id: Optional[UUID] = None
    year: int
    type: TransactionType
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    pending_before: Decimal
    pending_after: Decimal
    description: Optional[str] = None
    created_by_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LeaveTransactionListResponse(BaseModel):
    transactions: list[LeaveTransactionResponse]
    total: int
