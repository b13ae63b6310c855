"""Sharing window rules derived from a booking's schedule."""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum

from snapnow_live.domain.errors import InvalidScheduleError

DEFAULT_LEAD_MINUTES = 10

_MERIDIEM = re.compile(r"[AP]M", re.IGNORECASE)
_LEADING_DIGITS = re.compile(r"\s*([+-]?\d+)")


class WindowClosePolicy(str, Enum):
    """What happens to an open sharing window as the session runs on."""

    NEVER = "never"
    AFTER_SESSION = "after_session"


@dataclass(frozen=True)
class WindowStatus:
    """Result of one window evaluation."""

    is_open: bool
    minutes_until: float
    minutes_until_available: int | None
    has_ended: bool = False


def parse_scheduled_time(raw: str) -> tuple[int, int]:
    """Parse a free-text clock time into 24-hour (hour, minute).

    Accepts "2:30 PM", "12:00 am", "14:00" and similar. Only the first AM/PM
    marker is removed; a missing or non-numeric minute counts as zero.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidScheduleError("Scheduled time is empty")
    parts = _MERIDIEM.sub("", raw, count=1).strip().split(":")
    hours = _leading_int(parts[0])
    if hours is None:
        raise InvalidScheduleError(f"Scheduled time has no hour: {raw!r}")
    minutes = (_leading_int(parts[1]) if len(parts) > 1 else None) or 0
    is_pm = "pm" in raw.lower()
    if is_pm and hours != 12:
        hours += 12
    elif hours == 12 and not is_pm:
        hours = 0
    if not 0 <= hours <= 23 or not 0 <= minutes <= 59:
        raise InvalidScheduleError(f"Scheduled time out of range: {raw!r}")
    return hours, minutes


def parse_scheduled_date(raw: date | str) -> date:
    """Return the calendar date of an ISO date or datetime value."""
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    cleaned = raw.strip() if isinstance(raw, str) else ""
    try:
        return date.fromisoformat(cleaned[:10])
    except ValueError as exc:
        raise InvalidScheduleError(f"Scheduled date is invalid: {raw!r}") from exc


def session_start(
    scheduled_date: date | str, scheduled_time: str, tz: tzinfo | None = None
) -> datetime:
    """Combine a booking's date and time into the session start instant."""
    hours, minutes = parse_scheduled_time(scheduled_time)
    start = datetime.combine(parse_scheduled_date(scheduled_date), time(hours, minutes))
    if tz is not None:
        return start.replace(tzinfo=tz)
    return start.astimezone()


def evaluate_window(  # noqa: PLR0913
    start: datetime,
    now: datetime,
    *,
    lead_minutes: int = DEFAULT_LEAD_MINUTES,
    close_policy: WindowClosePolicy = WindowClosePolicy.NEVER,
    close_after_minutes: int = 0,
) -> WindowStatus:
    """Decide whether sharing is permitted at ``now`` for a session at ``start``."""
    minutes_until = (start - now) / timedelta(minutes=1)
    if minutes_until <= lead_minutes:
        has_ended = (
            close_policy == WindowClosePolicy.AFTER_SESSION
            and -minutes_until >= close_after_minutes
        )
        return WindowStatus(
            is_open=not has_ended,
            minutes_until=minutes_until,
            minutes_until_available=None,
            has_ended=has_ended,
        )
    return WindowStatus(
        is_open=False,
        minutes_until=minutes_until,
        minutes_until_available=math.ceil(minutes_until - lead_minutes),
    )


def _leading_int(text: str) -> int | None:
    match = _LEADING_DIGITS.match(text)
    if match is None:
        return None
    return int(match.group(1))
