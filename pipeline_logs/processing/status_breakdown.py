"""Status distribution for a bounded time window."""

from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Tuple
from zoneinfo import ZoneInfo

from pipeline_logs.schemas.log_schemas import StatusCount


def day_bounds(day: date, tz_name: str = "UTC") -> Tuple[datetime, datetime]:
    """
    Return the inclusive UTC window covering ``day`` in ``tz_name``.

    The window runs from 00:00:00 to 23:59:59.999999 local time.
    """
    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz) - timedelta(
        microseconds=1
    )
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def rounded_percentage(count: int, total: int) -> int:
    """Whole-number share of ``count`` in ``total``, rounding halves up."""
    if total <= 0:
        return 0
    ratio = Decimal(count) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def breakdown(statuses: Iterable[str]) -> Tuple[int, List[StatusCount]]:
    """
    Group raw status values into counts and percentages.

    Results are ordered by count descending; equal counts keep the order in
    which the status was first seen. Percentages are not adjusted to sum
    to 100.
    """
    counts = Counter(statuses)
    total = sum(counts.values())
    # Counter preserves first-seen order and sorted() is stable.
    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return total, [
        StatusCount(status=status, count=count, percentage=rounded_percentage(count, total))
        for status, count in ordered
    ]
