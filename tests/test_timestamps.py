import random
from datetime import datetime, timedelta, timezone

import pytest

from git_history_editor.errors import InvalidRangeError
from git_history_editor.timestamps import (
    distribute_timestamps,
    format_datetime,
    parse_datetime,
    scatter_timestamps,
)

UTC = timezone.utc


def test_three_commits_over_a_week():
    stamps = distribute_timestamps(
        datetime(2023, 1, 1, tzinfo=UTC), datetime(2023, 1, 7, 23, 59, 59, tzinfo=UTC), 3
    )
    assert [format_datetime(s) for s in stamps] == [
        "2023-01-01 00:00:00",
        "2023-01-04 11:59:59",
        "2023-01-07 23:59:59",
    ]


def test_single_commit_gets_start():
    start = datetime(2023, 1, 1, tzinfo=UTC)
    assert distribute_timestamps(start, start + timedelta(days=1), 1) == [start]


def test_timestamps_strictly_increase():
    start = datetime(2023, 1, 1, tzinfo=UTC)
    stamps = distribute_timestamps(start, start + timedelta(seconds=9), 10)
    assert all(a < b for a, b in zip(stamps, stamps[1:]))
    assert stamps[-1] == start + timedelta(seconds=9)


def test_end_before_start_raises():
    start = datetime(2023, 1, 2, tzinfo=UTC)
    with pytest.raises(InvalidRangeError):
        distribute_timestamps(start, start - timedelta(days=1), 2)


def test_zero_count_raises():
    start = datetime(2023, 1, 1, tzinfo=UTC)
    with pytest.raises(InvalidRangeError):
        distribute_timestamps(start, start, 0)


def test_narrow_window_raises_unless_duplicates_allowed():
    start = datetime(2023, 1, 1, tzinfo=UTC)
    end = start + timedelta(seconds=2)
    with pytest.raises(InvalidRangeError):
        distribute_timestamps(start, end, 5)

    stamps = distribute_timestamps(start, end, 5, allow_duplicates=True)
    assert len(stamps) == 5
    assert all(a <= b for a, b in zip(stamps, stamps[1:]))


def test_naive_datetimes_are_utc():
    stamps = distribute_timestamps(datetime(2023, 1, 1), datetime(2023, 1, 2), 2)
    assert stamps[0].tzinfo is not None
    assert stamps[0].utcoffset() == timedelta(0)


def test_scatter_respects_gap_and_window():
    start = datetime(2023, 1, 1, tzinfo=UTC)
    end = datetime(2023, 1, 10, tzinfo=UTC)
    stamps = scatter_timestamps(start, end, 20, rng=random.Random(42))
    assert stamps[0] == start
    assert stamps[-1] <= end
    assert all(b - a >= timedelta(hours=3) for a, b in zip(stamps, stamps[1:]))


def test_scatter_rejects_small_window():
    start = datetime(2023, 1, 1, tzinfo=UTC)
    with pytest.raises(InvalidRangeError, match="too small"):
        scatter_timestamps(start, start + timedelta(hours=5), 3)


def test_parse_datetime_formats():
    assert parse_datetime("2023-01-01 10:00:00") == datetime(2023, 1, 1, 10, tzinfo=UTC)
    parsed = parse_datetime("2023-01-01T10:00:00+02:00")
    assert parsed.utcoffset() == timedelta(hours=2)
    with pytest.raises(ValueError):
        parse_datetime("yesterday")
