from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from database import RecurringInterval


def next_occurrence(anchor: datetime, interval: RecurringInterval | str) -> datetime:
    """
    Advance ``anchor`` by exactly one interval.

    Months and years are calendar aware: Jan 31 + 1 month lands on the last
    day of February, and Feb 29 + 1 year lands on Feb 28.
    """
    interval = RecurringInterval(interval)
    if interval is RecurringInterval.DAILY:
        return anchor + timedelta(days=1)
    if interval is RecurringInterval.WEEKLY:
        return anchor + timedelta(weeks=1)
    if interval is RecurringInterval.MONTHLY:
        return anchor + relativedelta(months=1)
    if interval is RecurringInterval.YEARLY:
        return anchor + relativedelta(years=1)
    raise ValueError(f"Unhandled recurring interval: {interval}")


def schedule_next_occurrence(
    is_recurring: bool,
    interval: Optional[RecurringInterval | str],
    anchor: datetime,
    now: datetime,
) -> Optional[datetime]:
    """Next-occurrence date to persist at save time; never earlier than ``now``."""
    if not is_recurring or not interval:
        return None

    candidate = next_occurrence(anchor, interval)
    if candidate < now:
        candidate = next_occurrence(now, interval)
    return candidate
