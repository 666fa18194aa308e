from __future__ import annotations

import calendar
import datetime as dt
from typing import Any, Dict, List, Tuple

SUNDAY = 6


def days_in_month(year: int, month: int) -> List[dt.date]:
    _, last = calendar.monthrange(year, month)
    return [dt.date(year, month, d) for d in range(1, last + 1)]


def is_rest_day(date_obj: dt.date, rest_weekday: int = SUNDAY) -> bool:
    return date_obj.weekday() == rest_weekday


def build_calendar(year: int, month: int, rest_weekday: int = SUNDAY) -> Tuple[Dict[str, Any], ...]:
    return tuple(
        {"date": day, "is_working_day": not is_rest_day(day, rest_weekday)}
        for day in days_in_month(year, month)
    )
