"""Per-category "done today" status for the four daily habits."""

import datetime
from typing import Iterable, Optional, Union

from models import DailyCompletion, LogEntry, MainCategory
from timezone_utils import to_local_date

# Lifestyle is deliberately absent: it is not one of the daily habits.
TRACKED_CATEGORIES = (
    MainCategory.TRANSPORT,
    MainCategory.FOOD,
    MainCategory.WASTE,
    MainCategory.ENERGY,
)


def daily_completion(logs: Iterable[LogEntry],
                     reference_date: Optional[Union[datetime.date, datetime.datetime, str]] = None) -> DailyCompletion:
    """
    Marks each tracked category complete if at least one log falls on the
    reference date's local calendar day (today when omitted).
    """
    day = to_local_date(reference_date)
    logged_today = {log.result.mainCategory for log in logs if to_local_date(log.date) == day}

    categories = {category.value: category in logged_today for category in TRACKED_CATEGORIES}
    return DailyCompletion(
        date=day.isoformat(),
        categories=categories,
        completedCount=sum(categories.values()),
        totalCategories=len(TRACKED_CATEGORIES),
    )
