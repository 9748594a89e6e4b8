"""
Tracking cycle calculator.

Turns a cycle's start date, its required length in days and "now" into weeks
completed, total weeks, completion and a percentage. Total over every date and
integer input; rejecting `required_days <= 0` is the routine item validator's job.
"""

import math
from datetime import date, datetime
from typing import Optional, Union

from app.schemas import CycleProgress

DAYS_PER_WEEK = 7

DateLike = Union[date, datetime]


def _elapsed_days(start_date: DateLike, now: DateLike) -> int:
    # date and datetime can't be subtracted from each other; compare calendar days then
    if isinstance(start_date, datetime) != isinstance(now, datetime):
        start_date = start_date.date() if isinstance(start_date, datetime) else start_date
        now = now.date() if isinstance(now, datetime) else now
    # timedelta.days already floors
    return max(0, (now - start_date).days)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_progress(start_date: DateLike, required_days: int, now: DateLike) -> CycleProgress:
    total_weeks = max(0, math.ceil(required_days / DAYS_PER_WEEK))
    elapsed_days = _elapsed_days(start_date, now)
    weeks_completed = min(total_weeks, elapsed_days // DAYS_PER_WEEK)
    is_completed = weeks_completed >= total_weeks

    if total_weeks == 0:
        percent = 0
    else:
        percent = round_half_up(100 * weeks_completed / total_weeks)
    percent = max(0, min(100, percent))

    return CycleProgress(
        weeks_completed=weeks_completed,
        total_weeks=total_weeks,
        is_completed=is_completed,
        percent=percent,
    )


def tracking_as_of(
    today: date,
    end_date: Optional[date] = None,
    paused_on: Optional[date] = None,
) -> date:
    """The date progress is measured at: frozen once the item ends or the cycle pauses."""
    candidates = [d for d in (end_date, paused_on) if d is not None]
    return min([today, *candidates])
