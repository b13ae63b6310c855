"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import tzinfo

from snapnow_live.adapters.geolocation import Geolocation, GeolocationOptions
from snapnow_live.adapters.live_location_client import (
    HttpxLiveLocationClient,
    LiveLocationClient,
)
from snapnow_live.config import Settings, parse_timezone
from snapnow_live.domain.bookings import Booking
from snapnow_live.services.notices import LoggingNoticeSink, NoticeSink
from snapnow_live.services.publisher import LocationCallback, LocationPublisher
from snapnow_live.services.session import LiveLocationSession, StateCallback
from snapnow_live.services.subscriber import CounterpartyCallback, LocationSubscriber
from snapnow_live.services.window import SessionWindowEvaluator


@dataclass
class SessionFactory:
    """Builds live location sessions from shared settings and clients."""

    settings: Settings
    client: LiveLocationClient
    notice_sink: NoticeSink
    tz: tzinfo | None

    def create(  # noqa: PLR0913
        self,
        booking: Booking,
        geolocation: Geolocation | None,
        *,
        on_location_update: LocationCallback | None = None,
        on_other_party_location: CounterpartyCallback | None = None,
        on_state_change: StateCallback | None = None,
        notice_sink: NoticeSink | None = None,
    ) -> LiveLocationSession:
        """Create an unstarted session for a booking."""
        settings = self.settings
        evaluator = SessionWindowEvaluator(
            booking=booking,
            tz=self.tz,
            lead_minutes=settings.window_lead_minutes,
            close_policy=settings.window_close_policy,
            close_after_minutes=settings.window_close_after_minutes,
        )
        publisher = LocationPublisher(
            booking=booking,
            client=self.client,
            geolocation=geolocation,
            notice_sink=notice_sink or self.notice_sink,
            options=GeolocationOptions(
                enable_high_accuracy=settings.geolocation_high_accuracy,
                timeout_ms=settings.geolocation_timeout_ms,
                maximum_age_ms=settings.geolocation_maximum_age_ms,
            ),
            on_location_update=on_location_update,
        )
        subscriber = LocationSubscriber(
            booking=booking,
            client=self.client,
            interval_seconds=settings.counterparty_poll_interval_seconds,
            on_other_party_location=on_other_party_location,
        )
        return LiveLocationSession(
            evaluator=evaluator,
            publisher=publisher,
            subscriber=subscriber,
            window_check_interval_seconds=settings.window_check_interval_seconds,
            on_state_change=on_state_change,
        )


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    live_location_client: LiveLocationClient
    notice_sink: NoticeSink
    session_factory: SessionFactory
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    client = HttpxLiveLocationClient.create(
        base_url=resolved_settings.api_base_url,
        session_cookie=resolved_settings.session_cookie,
        cookie_name=resolved_settings.session_cookie_name,
        timeout=resolved_settings.http_timeout_seconds,
    )
    notice_sink = LoggingNoticeSink()
    session_factory = SessionFactory(
        settings=resolved_settings,
        client=client,
        notice_sink=notice_sink,
        tz=parse_timezone(resolved_settings.timezone),
    )

    async def close_resources() -> None:
        await client.close()

    return AppContainer(
        settings=resolved_settings,
        live_location_client=client,
        notice_sink=notice_sink,
        session_factory=session_factory,
        close_resources=close_resources,
    )
