"""Live location session: one mounted instance of location sharing for a booking."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from types import TracebackType

from snapnow_live.domain import sharing
from snapnow_live.domain.bookings import Booking
from snapnow_live.domain.errors import (
    BookingNotEligibleError,
    InvalidScheduleError,
    LiveLocationError,
)
from snapnow_live.domain.locations import LocationSample
from snapnow_live.domain.sharing import SharingState
from snapnow_live.domain.window import WindowStatus
from snapnow_live.services.publisher import LocationPublisher
from snapnow_live.services.subscriber import LocationSubscriber
from snapnow_live.services.tasks import PeriodicTask
from snapnow_live.services.window import SessionWindowEvaluator

logger = logging.getLogger(__name__)

StateCallback = Callable[[SharingState], None]


@dataclass
class LiveLocationSession:
    """Coordinates window evaluation, publishing and subscribing for a booking.

    ``start`` mounts the session: the window is evaluated immediately and then
    every ``window_check_interval_seconds``. The first time the window is seen
    open, sharing starts automatically, once per session and never after a
    permission denial. ``close`` unmounts it and releases every owned task.
    """

    evaluator: SessionWindowEvaluator
    publisher: LocationPublisher
    subscriber: LocationSubscriber
    window_check_interval_seconds: float = 30.0
    auto_start: bool = True
    on_state_change: StateCallback | None = None
    state: SharingState = field(default_factory=sharing.initial_state, init=False)
    window: WindowStatus | None = field(default=None, init=False)
    _auto_started: bool = field(default=False, init=False)
    _started: bool = field(default=False, init=False)
    _closed: bool = field(default=False, init=False)
    _window_loop: PeriodicTask = field(init=False)

    def __post_init__(self) -> None:
        self.publisher.events = self
        self._window_loop = PeriodicTask(
            name=f"window-check:{self.booking.id}",
            interval_seconds=self.window_check_interval_seconds,
            action=self._refresh_window_loop,
        )

    @property
    def booking(self) -> Booking:
        """Return the booking this session shares location for."""
        return self.evaluator.booking

    async def __aenter__(self) -> "LiveLocationSession":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def start(self) -> None:
        """Mount the session; raises BookingNotEligibleError for unconfirmed bookings."""
        if self._started:
            return
        if not self.booking.is_eligible_for_sharing():
            raise BookingNotEligibleError(
                f"Booking {self.booking.id} is {self.booking.status}"
            )
        self._started = True
        await self.refresh_window()
        if not self._is_settled():
            self._window_loop.start()

    async def close(self) -> None:
        """Unmount the session and release every owned resource."""
        if self._closed:
            return
        self._closed = True
        await self._window_loop.cancel()
        await self.subscriber.close()
        await self.publisher.close()

    async def refresh_window(self) -> WindowStatus | None:
        """Run one window evaluation and apply its outcome."""
        if self._closed or self._is_settled():
            return None
        try:
            status = self.evaluator.evaluate()
        except InvalidScheduleError as exc:
            logger.warning(
                "Booking schedule is invalid",
                extra={"booking_id": self.booking.id, "reason": str(exc)},
            )
            self._set_state(sharing.schedule_invalid(self.state, str(exc)))
            await self._wind_down()
            return None

        self.window = status
        if status.has_ended:
            logger.info("Sharing window ended", extra={"booking_id": self.booking.id})
            self._set_state(sharing.window_ended(self.state))
            await self._wind_down()
        elif status.is_open:
            self._set_state(sharing.window_opened(self.state))
            self.subscriber.enable()
            self._maybe_auto_start()
        else:
            self._set_state(
                sharing.window_closed(self.state, status.minutes_until_available or 0)
            )
            await self.subscriber.disable()
        return status

    def start_sharing(self) -> bool:
        """Start sharing on user request; only allowed from the idle state."""
        if self._closed or not isinstance(self.state, sharing.Idle):
            return False
        return self.publisher.start_sharing()

    def stop_sharing(self) -> None:
        """Stop sharing on user request."""
        self.publisher.stop_sharing()

    async def poll_counterparty(self) -> None:
        """Fetch the other party's location now, if the window is open."""
        if self.subscriber.enabled:
            await self.subscriber.poll_once()

    def notify_location_event(self) -> None:
        """Forward a pushed location-change event to the subscriber."""
        self.subscriber.notify_location_event()

    # Publisher events

    def sharing_started(self) -> None:
        """Enter ``Starting``."""
        self._set_state(sharing.sharing_started(self.state))

    def sample_received(self, sample: LocationSample) -> None:
        """Record the latest local fix."""
        self._set_state(sharing.sample_received(self.state, sample))

    def error_reported(self, message: str | None) -> None:
        """Show or clear the inline error."""
        self._set_state(sharing.error_reported(self.state, message))

    def server_window(self, minutes_until_available: int) -> None:
        """Show the server's countdown; the server wins over the local clock."""
        logger.info(
            "Server reports sharing window not open",
            extra={
                "booking_id": self.booking.id,
                "minutes_until_available": minutes_until_available,
            },
        )
        self._set_state(sharing.window_closed(self.state, minutes_until_available))

    def permission_denied(self) -> None:
        """Enter the terminal denial state."""
        self._set_state(sharing.permission_denied(self.state))

    def sharing_stopped(self) -> None:
        """Return to idle."""
        self._set_state(sharing.sharing_stopped(self.state))

    async def _refresh_window_loop(self) -> None:
        await self.refresh_window()
        if self._is_settled():
            await self._window_loop.cancel()

    def _maybe_auto_start(self) -> None:
        if not self.auto_start or self._auto_started or self.publisher.permission_denied:
            return
        self._auto_started = True
        self.start_sharing()

    async def _wind_down(self) -> None:
        self.publisher.stop_sharing()
        await self.subscriber.disable()

    def _is_settled(self) -> bool:
        return isinstance(self.state, sharing.InvalidSchedule | sharing.Ended)

    def _set_state(self, state: SharingState) -> None:
        if self._closed or state == self.state:
            return
        logger.debug(
            "Sharing state changed",
            extra={"booking_id": self.booking.id, "state": type(state).__name__},
        )
        self.state = state
        if self.on_state_change:
            self.on_state_change(state)
