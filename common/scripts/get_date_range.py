# common/scripts/get_date_range.py
from datetime import date, timedelta
from typing import Optional


def get_week_date_range(target_date: Optional[date] = None) -> tuple[date, date, int]:
    """
    Monday, Sunday and ISO week number of the week holding ``target_date``.

    >>> get_week_date_range(date(2024, 1, 10))
    (datetime.date(2024, 1, 8), datetime.date(2024, 1, 14), 2)
    """
    day = target_date or date.today()
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6), day.isocalendar()[1]


__all__ = ["get_week_date_range"]
