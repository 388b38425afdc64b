from typing import List, Optional, Set
from datetime import date
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ptoflow.core.error_handling import ValidationError, PersistenceError
from ptoflow.core.query_builder import filter_by_date_range
from ptoflow.models.holiday import Holiday
from ptoflow.schemas.leave_type import HolidayCreate

logger = logging.getLogger(__name__)


async def get_holidays(db: AsyncSession, year: Optional[int] = None) -> List[Holiday]:
    query = select(Holiday).where(Holiday.is_active.is_(True))
    if year:
        query = filter_by_date_range(query, Holiday, "date", date(year, 1, 1), date(year, 12, 31))
    result = await db.execute(query.order_by(Holiday.date))
    return list(result.scalars().all())


async def get_holiday_dates(db: AsyncSession, start_date: date, end_date: date) -> Set[date]:
    """Active holiday dates in [start_date, end_date]."""
    query = filter_by_date_range(
        select(Holiday.date).where(Holiday.is_active.is_(True)),
        Holiday, "date", start_date, end_date,
    )
    result = await db.execute(query)
    return set(result.scalars().all())


async def create_holiday(db: AsyncSession, data: HolidayCreate) -> Holiday:
    existing = await db.execute(select(Holiday.id).where(Holiday.date == data.date))
    if existing.scalar_one_or_none() is not None:
        raise ValidationError.for_field("date", f"A holiday already exists on {data.date.isoformat()}")

    holiday = Holiday(
        id=uuid.uuid4(),
        name=data.name.strip(),
        date=data.date,
        is_active=True,
    )

    try:
        db.add(holiday)
        await db.commit()
        await db.refresh(holiday)
    except Exception:
        await db.rollback()
        logger.error(f"Failed to create holiday on {data.date}", exc_info=True)
        raise PersistenceError("create holiday")

    logger.info(f"Created holiday {holiday.name} on {holiday.date}")
    return holiday
