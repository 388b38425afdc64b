import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="ptoflow-test-logs-"))
os.environ.setdefault("TIMEZONE", "America/Chicago")

import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from ptoflow.core.database import Base, get_db
from ptoflow.core.security import create_access_token
from ptoflow.main import app
from ptoflow.models.user import User, UserRole, UserStatus
from ptoflow.models.leave_type import LeaveType
from ptoflow.models.leave_policy import LeavePolicy

# Monday, well clear of DST changes in America/Chicago
NOW = datetime(2030, 3, 4, 9, 0)
TODAY = NOW.date()
POLICY_DAYS = Decimal("5")


def next_business_day(after: date, skip: int = 0) -> date:
    """The (skip+1)-th weekday strictly after ``after``."""
    day = after
    remaining = skip + 1
    while remaining:
        day += timedelta(days=1)
        if day.weekday() < 5:
            remaining -= 1
    return day


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory) -> AsyncSession:
    """Session for fixtures and assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def service_db(session_factory) -> AsyncSession:
    """
    Separate session handed to services.

    A rollback inside a service expires everything in its session, so
    fixture objects live in ``db`` and stay readable after expected errors.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, name: str, email: str, role=UserRole.EMPLOYEE, manager=None) -> User:
    user = User(
        id=uuid.uuid4(),
        role=role,
        name=name,
        email=email,
        status=UserStatus.ACTIVE,
        reports_to_user_id=manager.id if manager else None,
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def admin(db: AsyncSession) -> User:
    return await _create_user(db, "Test Admin", "admin@test.com", role=UserRole.ADMIN)


@pytest.fixture
async def manager(db: AsyncSession) -> User:
    return await _create_user(db, "Morgan Manager", "manager@test.com")


@pytest.fixture
async def specific_approver(db: AsyncSession) -> User:
    return await _create_user(db, "Sam Specific", "specific@test.com")


@pytest.fixture
async def second_approver(db: AsyncSession) -> User:
    return await _create_user(db, "Riley Second", "second@test.com")


@pytest.fixture
async def employee(db: AsyncSession, manager: User) -> User:
    return await _create_user(db, "Avery Employee", "employee@test.com", manager=manager)


@pytest.fixture
async def outsider(db: AsyncSession) -> User:
    return await _create_user(db, "Oscar Outsider", "outsider@test.com")


@pytest.fixture
async def single_level_type(db: AsyncSession) -> LeaveType:
    leave_type = LeaveType(
        id=uuid.uuid4(),
        name="Vacation",
        code="VACA",
        multi_level_approval=False,
        specific_approvers=[],
        sort_order=10,
    )
    db.add(leave_type)
    await db.commit()
    return leave_type


@pytest.fixture
async def multi_level_type(db: AsyncSession, specific_approver: User) -> LeaveType:
    leave_type = LeaveType(
        id=uuid.uuid4(),
        name="Personal",
        code="PERS",
        multi_level_approval=True,
        disable_hierarchy_approval=False,
        specific_approvers=[str(specific_approver.id)],
        sort_order=20,
    )
    db.add(leave_type)
    await db.commit()
    return leave_type


async def create_policy(db: AsyncSession, user: User, leave_type: LeaveType, days=POLICY_DAYS, **kwargs) -> LeavePolicy:
    policy = LeavePolicy(
        id=uuid.uuid4(),
        user_id=user.id,
        leave_type_id=leave_type.id,
        initial_days=days,
        annual_accrual_amount=days,
        effective_date=kwargs.pop("effective_date", date(2020, 1, 1)),
        **kwargs,
    )
    db.add(policy)
    await db.commit()
    return policy


@pytest.fixture
async def vacation_policy(db: AsyncSession, employee: User, single_level_type: LeaveType) -> LeavePolicy:
    return await create_policy(db, employee, single_level_type)


@pytest.fixture
async def personal_policy(db: AsyncSession, employee: User, multi_level_type: LeaveType) -> LeavePolicy:
    return await create_policy(db, employee, multi_level_type)
