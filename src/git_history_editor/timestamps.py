"""Timestamp distribution across a time window."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from .errors import InvalidRangeError

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Minimum spacing between scattered commits.
DEFAULT_MIN_GAP = timedelta(hours=3)


def parse_datetime(text: str, date_format: str = DATE_FORMAT) -> datetime:
    """Parse a user-supplied instant.

    Accepts ``YYYY-MM-DD HH:MM:SS`` (taken as UTC) or an ISO 8601 string.
    Always returns an aware datetime.

    Raises:
        ValueError: If the text matches neither form
    """
    text = text.strip()
    try:
        parsed = datetime.strptime(text, date_format)
    except ValueError:
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_datetime(when: datetime, date_format: str = DATE_FORMAT) -> str:
    """Render an instant in the display format."""
    return when.strftime(date_format)


def _as_utc(when: datetime) -> datetime:
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when


def distribute_timestamps(
    start: datetime,
    end: datetime,
    count: int,
    allow_duplicates: bool = False,
) -> list[datetime]:
    """Spread ``count`` instants uniformly over ``[start, end]``.

    instant[i] = start + floor(i * (end - start) / (count - 1)) whole seconds,
    so the first equals ``start`` and the last equals ``end``.

    Args:
        start: First instant
        end: Last instant (inclusive)
        count: Number of instants, at least 1
        allow_duplicates: Accept repeated instants when the window has fewer
            whole seconds than ``count - 1``

    Returns:
        Non-decreasing list of aware datetimes, strictly increasing unless
        duplicates were allowed

    Raises:
        InvalidRangeError: If end < start, count < 1, or the window is too
            narrow for strictly increasing whole-second instants
    """
    start, end = _as_utc(start), _as_utc(end)
    if count < 1:
        raise InvalidRangeError(f"Cannot distribute {count} timestamps")
    if end < start:
        raise InvalidRangeError(
            f"End {format_datetime(end)} is before start {format_datetime(start)}"
        )

    start = start.replace(microsecond=0)
    if count == 1:
        return [start]

    span = int((end.replace(microsecond=0) - start).total_seconds())
    steps = count - 1
    if span < steps and not allow_duplicates:
        raise InvalidRangeError(
            f"Window of {span}s is too small for {count} distinct timestamps "
            f"(need at least {steps}s)"
        )

    return [start + timedelta(seconds=(i * span) // steps) for i in range(count)]


def scatter_timestamps(
    start: datetime,
    end: datetime,
    count: int,
    min_gap: timedelta = DEFAULT_MIN_GAP,
    rng: random.Random | None = None,
) -> list[datetime]:
    """Spread ``count`` instants over ``[start, end]`` with random gaps.

    The first instant is ``start``; consecutive instants are at least
    ``min_gap`` apart and the remaining slack is split by random weights,
    so the sequence is strictly increasing and never passes ``end``.

    Raises:
        InvalidRangeError: If the window cannot hold ``count - 1`` gaps
    """
    start, end = _as_utc(start).replace(microsecond=0), _as_utc(end)
    if count < 1:
        raise InvalidRangeError(f"Cannot distribute {count} timestamps")
    if end < start:
        raise InvalidRangeError(
            f"End {format_datetime(end)} is before start {format_datetime(start)}"
        )
    if count == 1:
        return [start]

    gap = max(int(min_gap.total_seconds()), 1)
    span = int((end - start).total_seconds())
    steps = count - 1
    slack = span - gap * steps
    if slack < 0:
        raise InvalidRangeError(f"Date range too small for {count} commits")

    rng = rng or random.Random()
    weights = [rng.random() for _ in range(steps)]
    total = sum(weights) or 1.0

    timestamps = [start]
    offset = 0
    for weight in weights:
        # Flooring keeps the summed extras within the slack.
        offset += gap + int(weight / total * slack)
        timestamps.append(start + timedelta(seconds=offset))
    return timestamps
