"""Session window evaluation on a wall clock."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo

from snapnow_live.domain.bookings import Booking
from snapnow_live.domain.window import (
    DEFAULT_LEAD_MINUTES,
    WindowClosePolicy,
    WindowStatus,
    evaluate_window,
    session_start,
)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionWindowEvaluator:
    """Decides whether a booking's sharing window is open right now.

    Under ``AFTER_SESSION`` the window ends once the booking's own duration
    has passed; ``close_after_minutes`` applies to bookings without one.
    """

    booking: Booking
    tz: tzinfo | None = None
    lead_minutes: int = DEFAULT_LEAD_MINUTES
    close_policy: WindowClosePolicy = WindowClosePolicy.NEVER
    close_after_minutes: int = 180
    clock: Callable[[], datetime] = field(default=_utc_now)

    def session_start(self) -> datetime:
        """Return the scheduled start; raises InvalidScheduleError."""
        return session_start(
            self.booking.scheduled_date, self.booking.scheduled_time, self.tz
        )

    def evaluate(self) -> WindowStatus:
        """Evaluate the window against the current clock."""
        return evaluate_window(
            self.session_start(),
            self.clock(),
            lead_minutes=self.lead_minutes,
            close_policy=self.close_policy,
            close_after_minutes=self.session_minutes(),
        )

    def session_minutes(self) -> int:
        """Return how long the session runs after its scheduled start."""
        return self.booking.duration_minutes or self.close_after_minutes
