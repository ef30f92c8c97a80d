"""
Recurrence resolution for records scheduled either on a weekday or on a date.

A record with ``day`` set is day-recurring (weekly); a record without ``day``
is date-specific. The filters below test each column on its own, so a record
carrying both still has to pass the date filter and groups under its date.

Filters are permissive toward the "other kind" of record: a day filter never
hides date-specific records and a date filter never hides day-recurring
ones. A day-recurring record whose ``day`` differs from the filter is
excluded.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Union

from sqlalchemy import or_

from opsboard.models.day_of_week import DayOfWeek
from opsboard.utils.helpers import start_of_day, to_naive_utc, today as current_day

ALL = "ALL"


@dataclass(frozen=True)
class ScheduleFilter:
    """Day/date filter as received from a list query"""
    day: Optional[Union[DayOfWeek, str]] = None
    date: Optional[Union[date, datetime]] = None

    @property
    def active_day(self) -> Optional[DayOfWeek]:
        if self.day is None or self.day == ALL:
            return None
        return DayOfWeek(self.day)

    @property
    def start(self) -> Optional[datetime]:
        if self.date is None:
            return None
        return start_of_day(self.date)


def is_day_recurring(record: Any) -> bool:
    return getattr(record, "day", None) is not None


def matches_day_or_date(record: Any, schedule: ScheduleFilter) -> bool:
    """Decide whether a record passes the day and date filters"""
    record_day = getattr(record, "day", None)
    record_date = getattr(record, "date", None)

    day = schedule.active_day
    if day is not None and record_day is not None and DayOfWeek(record_day) != day:
        return False

    start = schedule.start
    if start is not None and record_date is not None:
        if _as_datetime(record_date) < start:
            return False

    return True


def resolve_group_key(record: Any, today: Optional[date] = None) -> str:
    """
    Calendar day (ISO) a record is listed under.

    Date-specific records use their own date. Day-recurring records have no
    date of their own and are listed under today, whatever weekday they
    recur on.
    """
    record_date = getattr(record, "date", None)
    if record_date is not None:
        return _as_datetime(record_date).date().isoformat()
    return (today or current_day()).isoformat()


def day_filter_clause(column, day: Optional[Union[DayOfWeek, str]]):
    """SQL form of the day rule: ``day = X OR day IS NULL``"""
    active = ScheduleFilter(day=day).active_day
    if active is None:
        return None
    return or_(column == active, column.is_(None))


def date_filter_clause(column, value: Optional[Union[date, datetime]]):
    """SQL form of the date rule: ``date >= start_of_day OR date IS NULL``"""
    if value is None:
        return None
    return or_(column >= start_of_day(value), column.is_(None))


def schedule_clauses(model, schedule: ScheduleFilter) -> list:
    """Day and date predicates for a model with ``day``/``date`` columns"""
    clauses = []
    if hasattr(model, "day"):
        clauses.append(day_filter_clause(model.day, schedule.day))
    if hasattr(model, "date"):
        clauses.append(date_filter_clause(model.date, schedule.date))
    return [c for c in clauses if c is not None]


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return to_naive_utc(value)
    return start_of_day(value)
