"""Booking references used by live location sharing."""

from dataclasses import dataclass
from datetime import date

CUSTOMER = "customer"
PHOTOGRAPHER = "photographer"
USER_TYPES = frozenset({CUSTOMER, PHOTOGRAPHER})

PENDING = "pending"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"
EXPIRED = "expired"


@dataclass(frozen=True)
class Booking:
    """A booking as seen by one of its two parties.

    The booking itself is owned by the server; this is only the slice of it
    needed to decide when and where to share location.
    """

    id: str
    scheduled_date: date | str
    scheduled_time: str
    user_type: str
    status: str = CONFIRMED
    duration_minutes: int | None = None

    def __post_init__(self) -> None:
        if self.user_type not in USER_TYPES:
            raise ValueError(f"Unknown user type: {self.user_type}")
        if self.duration_minutes is not None and self.duration_minutes <= 0:
            raise ValueError(f"Duration must be positive: {self.duration_minutes}")

    def is_eligible_for_sharing(self) -> bool:
        """Return true when the booking may exchange live locations."""
        return self.status == CONFIRMED
