"""Wall-clock arithmetic for the daily cleanup trigger.

All instants are timezone-aware. ``tz=None`` means the system local zone.
Comparisons and differences go through POSIX timestamps because Python
compares aware datetimes that share a tzinfo by wall time, which is wrong
across a DST transition.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional

from logvault.errors import ClockArithmeticError

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_TIME = time(1, 0, 0)
FALLBACK_DELAY = timedelta(hours=1)


def parse_time_of_day(text: str) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a ``time``.

    Raises ValueError with a message naming the offending field.
    """
    parts = text.split(":")
    if len(parts) not in (2, 3):
        raise ValueError("time must be HH:MM or HH:MM:SS")

    fields = ("hour", "minute", "second")
    limits = (23, 59, 59)
    values = []
    for name, limit, part in zip(fields, limits, parts):
        if not part.isdigit():
            raise ValueError(f"invalid {name} {part!r} (expected a number 0-{limit})")
        value = int(part)
        if value > limit:
            raise ValueError(f"{name} must be between 0 and {limit}, got {value}")
        values.append(value)

    return time(*values)


def now_local(tz: Optional[tzinfo] = None) -> datetime:
    """Current aware time in ``tz`` (system local zone when None)."""
    if tz is None:
        return datetime.now().astimezone()
    return datetime.now(tz)


def _as_aware(naive: datetime, tz: Optional[tzinfo], fold: int) -> datetime:
    candidate = naive.replace(fold=fold)
    if tz is None:
        return candidate.astimezone()
    return candidate.replace(tzinfo=tz)


def resolve_local(naive: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Map a local wall-clock time to a real instant.

    An ambiguous time (DST overlap) resolves to the earlier instant. A time
    that does not exist (DST gap) raises ``ClockArithmeticError``.
    """
    instants = []
    for fold in (0, 1):
        aware = _as_aware(naive, tz, fold)
        utc = aware.astimezone(timezone.utc)
        # Times inside a gap do not survive the round trip
        if utc.astimezone(tz).replace(tzinfo=None) == naive:
            instants.append(utc)

    if not instants:
        raise ClockArithmeticError(f"Local time {naive.isoformat()} does not exist")

    return min(instants, key=lambda dt: dt.timestamp()).astimezone(tz)


def next_trigger(
    now: datetime, at: time, tz: Optional[tzinfo] = None
) -> datetime:
    """Next instant whose local time of day equals ``at``.

    Today's occurrence is used only if it is strictly after ``now``,
    otherwise tomorrow's.
    """
    today: date = now.astimezone(tz).date()
    candidate = resolve_local(datetime.combine(today, at), tz)
    if candidate.timestamp() > now.timestamp():
        return candidate
    return resolve_local(datetime.combine(today + timedelta(days=1), at), tz)


def next_cleanup(
    now: datetime, at: Optional[time] = None, tz: Optional[tzinfo] = None
) -> datetime:
    """Next cleanup instant, never failing.

    Falls back to the default 01:00:00 trigger when ``at`` cannot be
    resolved, and to ``now + 1h`` when that fails too.
    """
    at = at or DEFAULT_CLEANUP_TIME
    try:
        return next_trigger(now, at, tz)
    except ClockArithmeticError as e:
        logger.error("Cleanup time %s unusable (%s), trying %s", at, e, DEFAULT_CLEANUP_TIME)

    try:
        return next_trigger(now, DEFAULT_CLEANUP_TIME, tz)
    except ClockArithmeticError as e:
        logger.error("Default cleanup time unusable (%s), retrying in 1 hour", e)

    return (now.astimezone(timezone.utc) + FALLBACK_DELAY).astimezone(tz)


def seconds_until(target: datetime, now: datetime) -> int:
    """Whole seconds from ``now`` to ``target``, 0 if already reached.

    Rounded up so a sleep never wakes before the trigger.
    """
    delta = target.timestamp() - now.timestamp()
    if delta <= 0:
        return 0
    return math.ceil(delta)
