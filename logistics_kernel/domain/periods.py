"""
Reporting periods and calendar buckets.

Responsibility:
    Turns "daily" / "weekly" / "monthly" into the lower bound of a reporting
    window, and builds the calendar-week and calendar-month buckets used by
    performance statistics.  All values are naive UTC datetimes, matching
    what the store holds.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Callers pass ``now`` from a Clock.

Invariants enforced:
    - daily   -> start of today.
    - weekly  -> start of the day six days ago (seven calendar days
      including today).
    - monthly -> start of the current month.
    - None    -> no lower bound.
    - Week buckets start on Monday; buckets are contiguous and returned
      oldest first, the last one containing ``now``.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from logistics_kernel.exceptions import ValidationError


class ReportPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class Bucket:
    """Half-open time range [start, end) with a display label."""

    label: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


def parse_period(period: str | None) -> ReportPeriod | None:
    """
    Normalize a period argument.  None and "all" mean all time.

    Raises:
        ValidationError: Unknown period name.
    """
    if period is None:
        return None
    value = str(getattr(period, "value", period)).strip().lower()
    if value in ("", "all"):
        return None
    try:
        return ReportPeriod(value)
    except ValueError as exc:
        raise ValidationError(
            "period", f"must be one of daily, weekly, monthly; got {period!r}"
        ) from exc


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_month(moment: datetime) -> datetime:
    return start_of_day(moment).replace(day=1)


def period_start(period: str | None, now: datetime) -> datetime | None:
    """Lower bound of the reporting window for ``period`` as of ``now``."""
    parsed = parse_period(period)
    if parsed is None:
        return None
    if parsed is ReportPeriod.DAILY:
        return start_of_day(now)
    if parsed is ReportPeriod.WEEKLY:
        return start_of_day(now) - timedelta(days=6)
    return start_of_month(now)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift a first-of-month datetime by ``months`` (may be negative)."""
    index = moment.year * 12 + (moment.month - 1) + months
    return moment.replace(year=index // 12, month=index % 12 + 1, day=1)


def week_buckets(now: datetime, count: int) -> list[Bucket]:
    """The last ``count`` calendar weeks (Monday start), labelled Week 1..count."""
    this_monday = start_of_day(now) - timedelta(days=now.weekday())
    first = this_monday - timedelta(weeks=count - 1)
    return [
        Bucket(
            label=f"Week {i + 1}",
            start=first + timedelta(weeks=i),
            end=first + timedelta(weeks=i + 1),
        )
        for i in range(count)
    ]


def month_buckets(now: datetime, count: int) -> list[Bucket]:
    """The last ``count`` calendar months, labelled e.g. "Jun 2024"."""
    current = start_of_month(now)
    buckets = []
    for offset in range(count - 1, -1, -1):
        start = add_months(current, -offset)
        buckets.append(
            Bucket(
                label=f"{calendar.month_abbr[start.month]} {start.year}",
                start=start,
                end=add_months(start, 1),
            )
        )
    return buckets
