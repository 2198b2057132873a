from datetime import date, datetime, timedelta, timezone

import pytest

from keepmeontrack.domain.dates import (
    bucket_by_day, month_days, safe_calendar_day, to_calendar_day, to_naive_utc, utcnow,
)


@pytest.mark.parametrize("value", [
    date(2026, 3, 9),
    datetime(2026, 3, 9, 23, 59),
    "2026-03-09",
    "2026-03-09T08:15:00",
    "2026-03-09T08:15:00Z",
    "2026-03-09T08:15:00.123456+00:00",
])
def test_forms_of_the_same_day_agree(value):
    assert to_calendar_day(value) == date(2026, 3, 9)


def test_aware_timestamps_are_read_in_utc():
    late_in_new_york = datetime(2026, 3, 9, 22, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert to_calendar_day(late_in_new_york) == date(2026, 3, 10)
    assert to_calendar_day("2026-03-10T01:00:00+02:00") == date(2026, 3, 9)


def test_to_naive_utc_leaves_naive_values_alone():
    naive = datetime(2026, 1, 1, 12)
    assert to_naive_utc(naive) is naive
    assert to_naive_utc(naive.replace(tzinfo=timezone.utc)) == naive


@pytest.mark.parametrize("value", ["", "not a date", "2026-13-01", 42])
def test_bad_values_raise(value):
    with pytest.raises((ValueError, TypeError)):
        to_calendar_day(value)


@pytest.mark.parametrize("value", [None, "", "garbage", 42])
def test_safe_calendar_day_returns_none(value):
    assert safe_calendar_day(value) is None


def test_bucket_by_day_skips_malformed_dates():
    items = [
        {"id": 1, "when": "2026-03-09T10:00:00Z"},
        {"id": 2, "when": datetime(2026, 3, 9, 18)},
        {"id": 3, "when": "yesterday"},
        {"id": 4, "when": None},
        {"id": 5, "when": date(2026, 3, 10)},
    ]
    buckets = bucket_by_day(items, lambda i: i["when"])
    assert [i["id"] for i in buckets[date(2026, 3, 9)]] == [1, 2]
    assert [i["id"] for i in buckets[date(2026, 3, 10)]] == [5]
    assert len(buckets) == 2


def test_month_days():
    days = month_days(2028, 2)
    assert len(days) == 29
    assert days[0] == date(2028, 2, 1)
    assert days[-1] == date(2028, 2, 29)


def test_utcnow_is_naive_utc():
    before = datetime.now(timezone.utc).replace(tzinfo=None)
    now = utcnow()
    after = datetime.now(timezone.utc).replace(tzinfo=None)
    assert now.tzinfo is None
    assert before <= now <= after
