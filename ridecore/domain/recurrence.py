"""
Weekly occurrence arithmetic for recurring plans.

All instants are timezone-aware UTC.  A plan entry "Monday 08:00" recurs
every Monday at 08:00 UTC; the scheduler asks for the first occurrence at
or after a reference instant and checks it against its due window.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from .enums import Weekday


def next_occurrence(day: Weekday, time_of_day: time, after: datetime) -> datetime:
    """First ``day`` at ``time_of_day`` (UTC) that is not before *after*."""
    after = after.astimezone(timezone.utc)
    days_ahead = (day.index - after.weekday()) % 7
    candidate = datetime.combine(
        after.date() + timedelta(days=days_ahead),
        time_of_day.replace(tzinfo=None),
        tzinfo=timezone.utc,
    )
    if candidate < after:
        candidate += timedelta(days=7)
    return candidate


def due_occurrence(
    day: Weekday,
    time_of_day: time,
    now: datetime,
    grace: timedelta,
    lookahead: timedelta,
) -> datetime | None:
    """
    The occurrence falling inside ``[now - grace, now + lookahead]``, if any.

    The grace period lets a tick that lands just after the wall-clock time
    still fire the occurrence; the occurrence guard record stops it firing
    twice.
    """
    occurrence = next_occurrence(day, time_of_day, now - grace)
    if occurrence <= now + lookahead:
        return occurrence
    return None
