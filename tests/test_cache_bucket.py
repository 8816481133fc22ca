"""Tests for week-bucketed signed URL dates."""

from datetime import datetime, timedelta, timezone

from recipebox.services.cache_bucket import week_bucket, bucket_datetime

SUNDAY = 6
MONDAY = 0

# 2026-10-18 is a Sunday
WEEK_START_DAY = datetime(2026, 10, 18, tzinfo=timezone.utc)


def test_week_start_day_is_kept():
    now = WEEK_START_DAY.replace(hour=15, minute=42)
    assert week_bucket(now, SUNDAY) == "2026-10-18T00:00:00.000Z"


def test_mid_week_rolls_forward_to_next_week_start():
    wednesday = datetime(2026, 10, 14, 9, 30, tzinfo=timezone.utc)
    assert week_bucket(wednesday, SUNDAY) == "2026-10-18T00:00:00.000Z"


def test_same_day_calls_are_identical():
    morning = datetime(2026, 10, 13, 0, 0, 1, tzinfo=timezone.utc)
    night = datetime(2026, 10, 13, 23, 59, 59, tzinfo=timezone.utc)
    assert week_bucket(morning, SUNDAY) == week_bucket(night, SUNDAY)


def test_whole_window_shares_one_bucket():
    start = datetime(2026, 10, 12, 0, 0, tzinfo=timezone.utc)  # Monday
    buckets = {week_bucket(start + timedelta(hours=h), SUNDAY) for h in range(0, 7 * 24)}
    assert buckets == {"2026-10-18T00:00:00.000Z"}


def test_window_edge_changes_bucket():
    before = datetime(2026, 10, 18, 23, 59, 59, tzinfo=timezone.utc)  # Sunday
    after = datetime(2026, 10, 19, 0, 0, 0, tzinfo=timezone.utc)  # Monday
    assert week_bucket(before, SUNDAY) != week_bucket(after, SUNDAY)
    assert week_bucket(after, SUNDAY) == "2026-10-25T00:00:00.000Z"


def test_configurable_week_start():
    wednesday = datetime(2026, 10, 14, 9, 30, tzinfo=timezone.utc)
    assert week_bucket(wednesday, MONDAY) == "2026-10-19T00:00:00.000Z"


def test_non_utc_input_is_normalized():
    # 2026-10-18 01:00 in UTC+5 is still Saturday in UTC
    tz = timezone(timedelta(hours=5))
    local = datetime(2026, 10, 18, 1, 0, tzinfo=tz)
    assert week_bucket(local, SUNDAY) == "2026-10-18T00:00:00.000Z"


def test_bucket_datetime_round_trip():
    parsed = bucket_datetime("2026-10-18T00:00:00.000Z")
    assert parsed == WEEK_START_DAY
