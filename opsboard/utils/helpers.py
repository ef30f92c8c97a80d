"""
General helper utilities
"""
from datetime import date, datetime, time, timezone
from typing import Optional, Union


def to_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored naive (UTC); normalize aware values before comparing"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def start_of_day(value: Union[date, datetime]) -> datetime:
    """Midnight at the beginning of the given calendar day"""
    if isinstance(value, datetime):
        value = to_naive_utc(value).date()
    return datetime.combine(value, time.min)


def today(now: Optional[datetime] = None) -> date:
    """Current calendar day"""
    return (now or datetime.now()).date()
