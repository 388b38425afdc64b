from ptoflow.models.user import User
from ptoflow.models.leave_type import LeaveType
from ptoflow.models.leave_policy import LeavePolicy
from ptoflow.models.leave_balance import LeaveBalance
from ptoflow.models.leave_request import LeaveRequest, LeaveApproval
from ptoflow.models.leave_transaction import LeaveTransaction
from ptoflow.models.holiday import Holiday

__all__ = [
    "User",
    "LeaveType",
    "LeavePolicy",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveApproval",
    "LeaveTransaction",
    "Holiday",
]
