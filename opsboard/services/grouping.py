"""
Group scheduled records by calendar day for display
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable, List, Optional

from opsboard.services.recurrence import resolve_group_key
from opsboard.utils.helpers import today as current_day


@dataclass
class DateGroup:
    date_key: str
    heading: str
    records: List[Any] = field(default_factory=list)


def format_heading(date_key: str, today: Optional[date] = None) -> str:
    """'June 10, 2025', suffixed with ' - Today' or ' - Tomorrow' when relevant"""
    day = date.fromisoformat(date_key)
    today = today or current_day()

    suffix = ""
    if day == today:
        suffix = " - Today"
    elif day == today + timedelta(days=1):
        suffix = " - Tomorrow"

    return f"{day.strftime('%B')} {day.day}, {day.year}{suffix}"


def group_by_date(records: Iterable[Any], today: Optional[date] = None) -> List[DateGroup]:
    """
    Group records under their resolved date key.

    Groups are sorted ascending by date; records keep the order they came in
    within their group.
    """
    today = today or current_day()
    buckets: dict[str, List[Any]] = {}
    for record in records:
        buckets.setdefault(resolve_group_key(record, today), []).append(record)

    return [
        DateGroup(date_key=key, heading=format_heading(key, today), records=buckets[key])
        for key in sorted(buckets, key=date.fromisoformat)
    ]
