"""
Seed script to create sample users, leave types and policies.
Run with: python -m scripts.seed_data
"""
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from datetime import date, timedelta
from decimal import Decimal
import uuid

from sqlalchemy import select
from ptoflow.core.database import AsyncSessionLocal, engine
from ptoflow.core.security import create_access_token
from ptoflow.models.user import User, UserRole, UserStatus
from ptoflow.models.leave_type import LeaveType
from ptoflow.models.leave_policy import LeavePolicy


async def seed_data():
    """Seed the database with sample data."""
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(User).where(User.email == "admin@demo.com"))
        if result.scalar_one_or_none():
            print("Demo data already exists. Skipping seed.")
            return

        admin = User(
            id=uuid.uuid4(),
            role=UserRole.ADMIN,
            name="Admin User",
            email="admin@demo.com",
            status=UserStatus.ACTIVE,
        )
        hr_approver = User(
            id=uuid.uuid4(),
            role=UserRole.EMPLOYEE,
            name="Helen Ruiz",
            email="hr@demo.com",
            status=UserStatus.ACTIVE,
        )
        manager = User(
            id=uuid.uuid4(),
            role=UserRole.EMPLOYEE,
            name="Morgan Lee",
            email="manager@demo.com",
            status=UserStatus.ACTIVE,
        )
        db.add_all([admin, hr_approver, manager])
        await db.flush()

        employees_data = [
            {"name": "Jane Smith", "email": "jane@demo.com"},
            {"name": "Bob Johnson", "email": "bob@demo.com"},
        ]
        employees = []
        for emp_data in employees_data:
            employee = User(
                id=uuid.uuid4(),
                role=UserRole.EMPLOYEE,
                name=emp_data["name"],
                email=emp_data["email"],
                status=UserStatus.ACTIVE,
                reports_to_user_id=manager.id,
            )
            db.add(employee)
            employees.append(employee)

        vacation = LeaveType(
            id=uuid.uuid4(),
            name="Vacation",
            code="VACA",
            color="#2E86DE",
            multi_level_approval=False,
            sort_order=10,
        )
        personal = LeaveType(
            id=uuid.uuid4(),
            name="Personal",
            code="PERS",
            color="#10AC84",
            multi_level_approval=True,
            specific_approvers=[str(hr_approver.id)],
            sort_order=20,
        )
        db.add_all([vacation, personal])
        await db.flush()

        effective = date.today() - timedelta(days=30)
        for employee in employees:
            for leave_type, days in ((vacation, Decimal("15")), (personal, Decimal("5"))):
                db.add(LeavePolicy(
                    id=uuid.uuid4(),
                    user_id=employee.id,
                    leave_type_id=leave_type.id,
                    initial_days=days,
                    annual_accrual_amount=days,
                    effective_date=effective,
                ))

        await db.commit()
        print("Seed data created successfully!")
        print("\nAccess tokens (Authorization: Bearer <token>):")
        for user in [admin, hr_approver, manager, *employees]:
            token = create_access_token({"sub": str(user.id)})
            print(f"  {user.email}: {token}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_data())
