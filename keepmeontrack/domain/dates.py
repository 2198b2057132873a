import calendar
from collections import defaultdict
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar, Union

T = TypeVar("T")

DayLike = Union[date, datetime, str]


def utcnow() -> datetime:
    """Current time as a naive UTC timestamp, the form every stored datetime uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_calendar_day(value: DayLike) -> date:
    """Reduce a date, timestamp or ISO string to its calendar day.

    Aware timestamps are read in UTC so that an offset added during
    serialization cannot move a completion to a neighbouring day.
    Raises ValueError for anything unparseable.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        if "T" not in text and " " not in text:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text)
    if isinstance(value, datetime):
        return to_naive_utc(value).date()
    if isinstance(value, date):
        return value
    raise ValueError(f"Not a date: {value!r}")


def safe_calendar_day(value: Any) -> Optional[date]:
    if value is None:
        return None
    try:
        return to_calendar_day(value)
    except (TypeError, ValueError):
        return None


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def bucket_by_day(items: Iterable[T], key: Callable[[T], Any]) -> Dict[date, List[T]]:
    """Group items by calendar day; items with a missing or malformed date are skipped."""
    buckets: Dict[date, List[T]] = defaultdict(list)
    for item in items:
        day = safe_calendar_day(key(item))
        if day is None:
            continue
        buckets[day].append(item)
    return dict(buckets)


def month_days(year: int, month: int) -> List[date]:
    _, last = calendar.monthrange(year, month)
    return [date(year, month, d) for d in range(1, last + 1)]
