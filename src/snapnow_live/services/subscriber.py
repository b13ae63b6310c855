"""Location subscriber: follows the other party's last known position."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from snapnow_live.adapters.live_location_client import LiveLocationClient
from snapnow_live.domain.bookings import Booking
from snapnow_live.domain.errors import LiveLocationError
from snapnow_live.domain.locations import CounterpartyLocation
from snapnow_live.services.tasks import PeriodicTask

logger = logging.getLogger(__name__)

LOCATION_UPDATE_EVENT = "location.update"

CounterpartyCallback = Callable[[CounterpartyLocation | None], None]


@dataclass
class LocationSubscriber:
    """Polls the counterparty location while the sharing window is open."""

    booking: Booking
    client: LiveLocationClient
    interval_seconds: float = 15.0
    on_other_party_location: CounterpartyCallback | None = None
    latest: CounterpartyLocation | None = field(default=None, init=False)
    _closed: bool = field(default=False, init=False)
    _loop: PeriodicTask = field(init=False)

    def __post_init__(self) -> None:
        self._loop = PeriodicTask(
            name=f"counterparty-poll:{self.booking.id}",
            interval_seconds=self.interval_seconds,
            action=self.poll_once,
        )

    @property
    def enabled(self) -> bool:
        """Return true while polling is active."""
        return self._loop.running

    def enable(self) -> None:
        """Start polling, fetching immediately; no-op when already enabled."""
        if self._closed or self.enabled:
            return
        self._loop.start()
        self._loop.trigger()

    async def disable(self) -> None:
        """Stop polling."""
        await self._loop.cancel()

    def notify_location_event(self) -> None:
        """Refetch now in response to a pushed location change."""
        if self.enabled:
            self._loop.trigger()

    async def poll_once(self) -> CounterpartyLocation | None:
        """Fetch the counterparty location once and forward it."""
        try:
            location = await self.client.fetch_counterparty_location(
                self.booking.id, self.booking.user_type
            )
        except LiveLocationError:
            logger.info(
                "Counterparty location unavailable",
                extra={"booking_id": self.booking.id},
            )
            location = None
        if self._closed:
            return None
        self.latest = location
        if self.on_other_party_location:
            self.on_other_party_location(location)
        return location

    async def close(self) -> None:
        """Stop polling for good."""
        self._closed = True
        await self.disable()


def is_location_update_event(message: Mapping[str, object], booking_id: str) -> bool:
    """Return true for a realtime event announcing a location change on a booking."""
    return (
        message.get("type") == "event"
        and message.get("channel") == f"booking:{booking_id}"
        and message.get("event") == LOCATION_UPDATE_EVENT
    )
