"""Pure stateless derived values: clean time, milestone progression, savings."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum

from cleansteps.recovery.milestone_presets import milestone_thresholds

SECONDS_PER_DAY = 86_400.0
SECONDS_PER_WEEK = 7 * SECONDS_PER_DAY


class Periodicity(str, Enum):
    per_day = "Per Day"
    per_week = "Per Week"

    @property
    def seconds(self) -> float:
        return SECONDS_PER_DAY if self is Periodicity.per_day else SECONDS_PER_WEEK


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops the offset on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def clean_time_seconds(sobriety_date: datetime | None, now: datetime | None = None) -> float:
    """Seconds elapsed since ``sobriety_date``; 0 when it is unset."""
    if sobriety_date is None:
        return 0.0
    current = as_utc(now) if now is not None else datetime.now(timezone.utc)
    return (current - as_utc(sobriety_date)).total_seconds()


def accrued_savings(amount_saved: float, periodicity: Periodicity, clean_time: float) -> float:
    """Total saved over ``clean_time`` seconds at ``amount_saved`` per period.

    Negative clean time (a sobriety date in the future) accrues nothing.
    """
    if clean_time <= 0:
        return 0.0
    return amount_saved * clean_time / periodicity.seconds


def milestone_progress(
    clean_time: float,
    thresholds: list[float] | None = None,
) -> tuple[float | None, float | None]:
    """Return (last reached threshold, next threshold) in seconds.

    Either side is None when clean time is below the first threshold or past
    the last one.
    """
    ordered = sorted(thresholds if thresholds is not None else milestone_thresholds())
    last: float | None = None
    for threshold in ordered:
        if clean_time >= threshold:
            last = threshold
        else:
            return last, threshold
    return last, None


def milestone_dates(
    sobriety_date: datetime | None,
    now: datetime | None = None,
) -> tuple[datetime | None, datetime | None]:
    """Absolute dates of the last reached and next predefined milestones."""
    if sobriety_date is None:
        return None, None
    start = as_utc(sobriety_date)
    last, upcoming = milestone_progress(clean_time_seconds(start, now))
    return (
        start + timedelta(seconds=last) if last is not None else None,
        start + timedelta(seconds=upcoming) if upcoming is not None else None,
    )


def milestone_progress_pct(clean_time: float) -> float | None:
    """Progress (0–100) from the last reached milestone toward the next one.

    None once every predefined milestone has been passed.
    """
    last, upcoming = milestone_progress(clean_time)
    if upcoming is None:
        return None
    floor = last or 0.0
    if clean_time <= floor:
        return 0.0
    return min(100.0, (clean_time - floor) / (upcoming - floor) * 100.0)
