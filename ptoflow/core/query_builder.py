"""
Reusable query builder functions shared by the leave services.
"""
from typing import Optional, List, Tuple, TypeVar, Sequence
from uuid import UUID
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import DeclarativeBase

# Type variable for SQLAlchemy models
ModelType = TypeVar('ModelType', bound=DeclarativeBase)


async def get_paginated_results(
    db: AsyncSession,
    query,
    skip: int = 0,
    limit: int = 100,
    order_by=None,
    options: Optional[Sequence] = None,
) -> Tuple[List, int]:
    """
    Execute a paginated query and return results with total count.

    Args:
        db: Database session
        query: SQLAlchemy select query
        skip: Number of records to skip
        limit: Maximum number of records to return
        order_by: Column(s) to order by (optional)
        options: Loader options applied to the page query only (optional)

    Returns:
        Tuple of (results_list, total_count)
    """
    count_query = select(func.count()).select_from(query.subquery())
    count_result = await db.execute(count_query)
    total = count_result.scalar() or 0

    if order_by is not None:
        if isinstance(order_by, (list, tuple)):
            query = query.order_by(*order_by)
        else:
            query = query.order_by(order_by)

    if options:
        query = query.options(*options)

    result = await db.execute(query.offset(skip).limit(limit))
    items = result.scalars().all()

    return list(items), total


def build_user_filtered_query(model: type[ModelType], user_id: UUID, user_column_name: str = "user_id"):
    """Base select for rows owned by a single user."""
    return select(model).where(getattr(model, user_column_name) == user_id)


def filter_by_status(
    query,
    model: type[ModelType],
    status: any,
    status_column_name: str = "status",
) -> type:
    """
    Add status filter to a query.

    Args:
        query: SQLAlchemy select query
        model: SQLAlchemy model class
        status: Status value to filter by
        status_column_name: Name of the status column (default: "status")

    Returns:
        Modified query
    """
    status_column = getattr(model, status_column_name)
    return query.where(status_column == status)


def filter_by_date_range(
    query,
    model: type[ModelType],
    date_column_name: str,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> type:
    """
    Add an inclusive date range filter on a Date column.

    Either bound may be omitted.
    """
    date_column = getattr(model, date_column_name)

    if from_date:
        query = query.where(date_column >= from_date)
    if to_date:
        query = query.where(date_column <= to_date)

    return query
