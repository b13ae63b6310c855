"""Errors raised by the live location core."""


class LiveLocationError(Exception):
    """Base error for live location sharing."""


class InvalidScheduleError(LiveLocationError, ValueError):
    """Raised when a booking's date or time cannot be interpreted."""


class BookingNotEligibleError(LiveLocationError):
    """Raised when a session is started for a booking that is not confirmed."""


class LocationSubmissionError(LiveLocationError):
    """Raised when the server rejects or never receives a location update."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        minutes_until_available: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.minutes_until_available = minutes_until_available

    @property
    def is_too_early(self) -> bool:
        """Return true when the server says the window has not opened yet."""
        return bool(self.minutes_until_available and self.minutes_until_available > 0)


class StopSharingError(LiveLocationError):
    """Raised when the server could not clear the shared location."""


class LocationFetchError(LiveLocationError):
    """Raised when the counterparty location could not be read."""
