"""
Company clock helpers. All PTO date rules are evaluated in settings.TIMEZONE.
"""
from typing import Optional
from datetime import datetime, date
import pytz

from ptoflow.core.config import settings


def get_company_timezone() -> pytz.BaseTzInfo:
    return pytz.timezone(settings.TIMEZONE)


def company_now(now: Optional[datetime] = None) -> datetime:
    """
    Current time as an aware datetime in the company timezone.

    A caller-supplied ``now`` is converted; naive values are taken as company-local.
    """
    tz = get_company_timezone()
    if now is None:
        return datetime.now(pytz.UTC).astimezone(tz)
    if now.tzinfo is None:
        return tz.localize(now)
    return now.astimezone(tz)


def company_today(now: Optional[datetime] = None) -> date:
    return company_now(now).date()


def start_of_day(day: date) -> datetime:
    """Midnight at the beginning of ``day`` in the company timezone."""
    return get_company_timezone().localize(datetime.combine(day, datetime.min.time()))


def hours_until(day: date, now: Optional[datetime] = None) -> float:
    """Hours from ``now`` until the start of ``day``. Negative once the day has begun."""
    return (start_of_day(day) - company_now(now)).total_seconds() / 3600
