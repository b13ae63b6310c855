"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from snapnow_live.adapters.geolocation import (
    ErrorCallback,
    Geolocation,
    GeolocationError,
    GeolocationOptions,
    SuccessCallback,
)
from snapnow_live.adapters.live_location_client import LiveLocationClient
from snapnow_live.config import Settings
from snapnow_live.domain.bookings import CUSTOMER, Booking
from snapnow_live.domain.errors import (
    LocationFetchError,
    LocationSubmissionError,
    StopSharingError,
)
from snapnow_live.domain.locations import (
    CounterpartyLocation,
    LiveLocationRecord,
    LocationSample,
    LocationUpdate,
)
from snapnow_live.domain.sharing import SharingState
from snapnow_live.domain.window import WindowClosePolicy
from snapnow_live.services.notices import Notice, NoticeSink
from snapnow_live.services.publisher import LocationPublisher
from snapnow_live.services.session import LiveLocationSession
from snapnow_live.services.subscriber import LocationSubscriber
from snapnow_live.services.window import SessionWindowEvaluator

SESSION_DATE = "2026-10-19"


@dataclass
class FakeGeolocation(Geolocation):
    """Geolocation fake that lets tests push fixes and errors."""

    watches: dict[int, tuple[SuccessCallback, ErrorCallback]] = field(
        default_factory=dict
    )
    options: list[GeolocationOptions] = field(default_factory=list)
    cleared: list[int] = field(default_factory=list)
    watch_calls: int = 0

    def watch_position(
        self,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
        options: GeolocationOptions,
    ) -> int:
        self.watch_calls += 1
        self.watches[self.watch_calls] = (on_success, on_error)
        self.options.append(options)
        return self.watch_calls

    def clear_watch(self, handle: int) -> None:
        self.cleared.append(handle)
        self.watches.pop(handle, None)

    def emit(self, sample: LocationSample) -> None:
        for on_success, _ in list(self.watches.values()):
            on_success(sample)

    def fail(self, code: int, message: str) -> None:
        for _, on_error in list(self.watches.values()):
            on_error(GeolocationError(code, message))


@dataclass
class FakeLiveLocationClient(LiveLocationClient):
    """Client fake that records calls and returns canned results."""

    published: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    stopped: list[str] = field(default_factory=list)
    fetched: list[tuple[str, str]] = field(default_factory=list)
    publish_error: LocationSubmissionError | None = None
    stop_error: StopSharingError | None = None
    fetch_error: LocationFetchError | None = None
    counterparty: CounterpartyLocation | None = None

    async def publish_location(
        self, booking_id: str, update: LocationUpdate
    ) -> LiveLocationRecord | None:
        self.published.append((booking_id, update.to_payload()))
        if self.publish_error is not None:
            raise self.publish_error
        return None

    async def stop_sharing(self, booking_id: str) -> None:
        self.stopped.append(booking_id)
        if self.stop_error is not None:
            raise self.stop_error

    async def fetch_counterparty_location(
        self, booking_id: str, user_type: str
    ) -> CounterpartyLocation | None:
        self.fetched.append((booking_id, user_type))
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.counterparty


@dataclass
class RecordingNoticeSink(NoticeSink):
    """Notice sink that keeps notices in memory."""

    notices: list[Notice] = field(default_factory=list)

    def notify(self, notice: Notice) -> None:
        self.notices.append(notice)

    def titles(self) -> list[str]:
        return [notice.title for notice in self.notices]


@dataclass
class MutableClock:
    """Clock whose time tests move by hand."""

    now: datetime

    def __call__(self) -> datetime:
        return self.now


@dataclass
class SessionHarness:
    """A session with all of its fakes."""

    session: LiveLocationSession
    client: FakeLiveLocationClient
    geolocation: FakeGeolocation
    notices: RecordingNoticeSink
    clock: MutableClock
    states: list[SharingState] = field(default_factory=list)
    own_locations: list[LocationSample | None] = field(default_factory=list)
    other_locations: list[CounterpartyLocation | None] = field(default_factory=list)


def at(hour: int, minute: int, second: int = 0) -> datetime:
    """Return a UTC instant on the session date."""
    return datetime(2026, 10, 19, hour, minute, second, tzinfo=UTC)


def make_booking(
    scheduled_time: str = "14:00", user_type: str = CUSTOMER, **kwargs: object
) -> Booking:
    return Booking(
        id=str(kwargs.pop("id", "booking-1")),
        scheduled_date=str(kwargs.pop("scheduled_date", SESSION_DATE)),
        scheduled_time=scheduled_time,
        user_type=user_type,
        **kwargs,  # type: ignore[arg-type]
    )


def make_harness(  # noqa: PLR0913
    now: datetime,
    booking: Booking | None = None,
    *,
    geolocation: FakeGeolocation | None = None,
    supported: bool = True,
    close_policy: WindowClosePolicy = WindowClosePolicy.NEVER,
    close_after_minutes: int = 180,
    window_check_interval_seconds: float = 30.0,
    poll_interval_seconds: float = 15.0,
) -> SessionHarness:
    """Build a session wired to fakes; the session is not started."""
    booking = booking or make_booking()
    clock = MutableClock(now)
    client = FakeLiveLocationClient()
    geo = geolocation or FakeGeolocation()
    sink = RecordingNoticeSink()
    states: list[SharingState] = []
    own: list[LocationSample | None] = []
    other: list[CounterpartyLocation | None] = []
    session = LiveLocationSession(
        evaluator=SessionWindowEvaluator(
            booking=booking,
            tz=UTC,
            close_policy=close_policy,
            close_after_minutes=close_after_minutes,
            clock=clock,
        ),
        publisher=LocationPublisher(
            booking=booking,
            client=client,
            geolocation=geo if supported else None,
            notice_sink=sink,
            on_location_update=own.append,
        ),
        subscriber=LocationSubscriber(
            booking=booking,
            client=client,
            interval_seconds=poll_interval_seconds,
            on_other_party_location=other.append,
        ),
        window_check_interval_seconds=window_check_interval_seconds,
        on_state_change=states.append,
    )
    return SessionHarness(
        session=session,
        client=client,
        geolocation=geo,
        notices=sink,
        clock=clock,
        states=states,
        own_locations=own,
        other_locations=other,
    )


async def settle() -> None:
    """Give background tasks a chance to run."""
    await asyncio.sleep(0.02)


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url="https://snapnow.test", session_cookie="cookie")


@pytest.fixture
def booking() -> Booking:
    return make_booking()


@pytest.fixture
def client() -> FakeLiveLocationClient:
    return FakeLiveLocationClient()


@pytest.fixture
def geolocation() -> FakeGeolocation:
    return FakeGeolocation()


@pytest.fixture
def notice_sink() -> RecordingNoticeSink:
    return RecordingNoticeSink()
