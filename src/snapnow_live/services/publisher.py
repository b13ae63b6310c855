"""Location publisher: watches this device and pushes fixes to the server."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from snapnow_live.adapters.geolocation import (
    Geolocation,
    GeolocationError,
    GeolocationOptions,
)
from snapnow_live.adapters.live_location_client import LiveLocationClient
from snapnow_live.domain.bookings import Booking
from snapnow_live.domain.errors import LocationSubmissionError, StopSharingError
from snapnow_live.domain.locations import LocationSample, LocationUpdate
from snapnow_live.services import notices
from snapnow_live.services.notices import NoticeSink
from snapnow_live.services.tasks import TaskGroup

logger = logging.getLogger(__name__)

LocationCallback = Callable[[LocationSample | None], None]


class PublisherEvents(Protocol):
    """Receiver of publisher state changes."""

    def sharing_started(self) -> None:
        """A watch was opened."""

    def sample_received(self, sample: LocationSample) -> None:
        """A fix arrived from the platform."""

    def error_reported(self, message: str | None) -> None:
        """The inline error changed."""

    def server_window(self, minutes_until_available: int) -> None:
        """The server reported the window is not open yet."""

    def permission_denied(self) -> None:
        """The user declined location access."""

    def sharing_stopped(self) -> None:
        """The watch was released."""


@dataclass
class LocationPublisher:
    """Owns the single geolocation watch for a booking on this device."""

    booking: Booking
    client: LiveLocationClient
    geolocation: Geolocation | None
    notice_sink: NoticeSink
    options: GeolocationOptions = field(default_factory=GeolocationOptions)
    on_location_update: LocationCallback | None = None
    events: PublisherEvents | None = None
    is_sharing: bool = field(default=False, init=False)
    watch_handle: int | None = field(default=None, init=False)
    current_location: LocationSample | None = field(default=None, init=False)
    error: str | None = field(default=None, init=False)
    permission_denied: bool = field(default=False, init=False)
    _closed: bool = field(default=False, init=False)
    _submissions: TaskGroup = field(default_factory=TaskGroup, init=False)
    _teardown: TaskGroup = field(default_factory=TaskGroup, init=False)

    def start_sharing(self) -> bool:
        """Open the geolocation watch; return true when a watch was started."""
        if self._closed or self.is_sharing:
            return False
        if self.geolocation is None:
            logger.info("Geolocation unavailable", extra={"booking_id": self.booking.id})
            self.notice_sink.notify(notices.NOT_SUPPORTED)
            return False
        self._set_error(None)
        self.watch_handle = self.geolocation.watch_position(
            self._handle_position, self._handle_error, self.options
        )
        self.is_sharing = True
        logger.info("Location sharing started", extra={"booking_id": self.booking.id})
        if self.events:
            self.events.sharing_started()
        self.notice_sink.notify(notices.SHARING_STARTED)
        return True

    def stop_sharing(self) -> None:
        """Release the watch and clear the stored location; safe to repeat."""
        if not self.is_sharing and self.watch_handle is None:
            return
        if self.watch_handle is not None and self.geolocation is not None:
            self.geolocation.clear_watch(self.watch_handle)
        self.watch_handle = None
        self.is_sharing = False
        self.current_location = None
        if self.on_location_update:
            self.on_location_update(None)
        if self.events:
            self.events.sharing_stopped()
        logger.info("Location sharing stopped", extra={"booking_id": self.booking.id})
        self.notice_sink.notify(notices.SHARING_STOPPED)
        self._teardown.spawn(self._clear_remote(), name="live-location-stop")

    async def close(self) -> None:
        """Stop sharing, wait for the server to be told, drop late responses."""
        self.stop_sharing()
        self._closed = True
        await self._submissions.cancel()
        await self._teardown.drain()

    async def wait_for_submissions(self) -> None:
        """Wait until every in-flight submission has completed."""
        await self._submissions.drain()

    def _handle_position(self, sample: LocationSample) -> None:
        if self._closed or not self.is_sharing:
            return
        self.current_location = sample
        if self.on_location_update:
            self.on_location_update(sample)
        if self.events:
            self.events.sample_received(sample)
        self._submissions.spawn(self._submit(sample), name="live-location-submit")

    def _handle_error(self, error: GeolocationError) -> None:
        if self._closed:
            return
        logger.warning(
            "Geolocation error",
            extra={"booking_id": self.booking.id, "code": error.code},
        )
        self._set_error(error.message)
        if error.is_permission_denied:
            self.permission_denied = True
            self.notice_sink.notify(notices.PERMISSION_DENIED)
            if self.events:
                self.events.permission_denied()
            self.stop_sharing()

    async def _submit(self, sample: LocationSample) -> None:
        update = LocationUpdate.from_sample(sample, self.booking.user_type)
        try:
            await self.client.publish_location(self.booking.id, update)
        except LocationSubmissionError as exc:
            if self._closed:
                return
            logger.warning(
                "Location update rejected",
                extra={"booking_id": self.booking.id, "status": exc.status_code},
            )
            if exc.is_too_early and self.events:
                self.events.server_window(exc.minutes_until_available)
            self._set_error(exc.message)

    async def _clear_remote(self) -> None:
        try:
            await self.client.stop_sharing(self.booking.id)
        except StopSharingError:
            logger.warning(
                "Failed to clear shared location", extra={"booking_id": self.booking.id}
            )

    def _set_error(self, message: str | None) -> None:
        self.error = message
        if self.events:
            self.events.error_reported(message)
