"""SnapNow booking live-location API client."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx
from pydantic import ValidationError

from snapnow_live.domain.bookings import CUSTOMER
from snapnow_live.domain.errors import (
    LocationFetchError,
    LocationSubmissionError,
    StopSharingError,
)
from snapnow_live.domain.locations import (
    CounterpartyLocation,
    LiveLocationRecord,
    LocationErrorBody,
    LocationUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_SUBMISSION_ERROR = "Failed to update location"


class LiveLocationClient(Protocol):
    """Interface for the booking live-location endpoints."""

    async def publish_location(
        self, booking_id: str, update: LocationUpdate
    ) -> LiveLocationRecord | None:
        """Publish this device's location for a booking."""

    async def stop_sharing(self, booking_id: str) -> None:
        """Clear this device's last known location for a booking."""

    async def fetch_counterparty_location(
        self, booking_id: str, user_type: str
    ) -> CounterpartyLocation | None:
        """Return the other party's last known location, if any."""


@dataclass
class HttpxLiveLocationClient(LiveLocationClient):
    """Live-location client implemented with httpx."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 10.0

    @classmethod
    def create(
        cls,
        base_url: str,
        session_cookie: str | None = None,
        cookie_name: str = "connect.sid",
        timeout: float = 10.0,
    ) -> "HttpxLiveLocationClient":
        """Create a client with a managed httpx session carrying the session cookie."""
        cookies = {cookie_name: session_cookie} if session_cookie else None
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(cookies=cookies),
            timeout=timeout,
        )

    async def publish_location(
        self, booking_id: str, update: LocationUpdate
    ) -> LiveLocationRecord | None:
        """POST a location sample; raise LocationSubmissionError on rejection."""
        url = self._booking_url(booking_id, "live-location")
        try:
            response = await self.http_client.post(
                url, json=update.to_payload(), timeout=self.timeout
            )
        except httpx.HTTPError as exc:
            raise LocationSubmissionError(DEFAULT_SUBMISSION_ERROR) from exc
        if response.is_error:
            raise _submission_error(response)
        return _parse_record(response)

    async def stop_sharing(self, booking_id: str) -> None:
        """DELETE the stored location for this device."""
        url = self._booking_url(booking_id, "live-location")
        try:
            response = await self.http_client.delete(url, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise StopSharingError("Failed to stop sharing") from exc

    async def fetch_counterparty_location(
        self, booking_id: str, user_type: str
    ) -> CounterpartyLocation | None:
        """GET the other party's location from the role-dependent endpoint."""
        url = self._booking_url(booking_id, counterparty_path(user_type))
        try:
            response = await self.http_client.get(url, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise LocationFetchError("Failed to fetch location") from exc
        record = _parse_record(response)
        return record.to_counterparty() if record else None

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    def _booking_url(self, booking_id: str, resource: str) -> str:
        return f"{self.base_url}/api/bookings/{booking_id}/{resource}"


def counterparty_path(user_type: str) -> str:
    """Return the endpoint exposing the other party's location."""
    if user_type == CUSTOMER:
        return "photographer-location"
    return "live-location"


def _parse_record(response: httpx.Response) -> LiveLocationRecord | None:
    """Parse a location payload, treating null or empty bodies as no location."""
    if not response.content:
        return None
    try:
        payload = response.json()
    except ValueError:
        logger.warning("Live location response is not JSON")
        return None
    if not payload:
        return None
    try:
        return LiveLocationRecord.model_validate(payload)
    except ValidationError:
        logger.warning("Live location response has an unexpected shape")
        return None


def _submission_error(response: httpx.Response) -> LocationSubmissionError:
    try:
        body = LocationErrorBody.model_validate(response.json())
    except (ValueError, ValidationError):
        body = LocationErrorBody()
    return LocationSubmissionError(
        body.error or DEFAULT_SUBMISSION_ERROR,
        status_code=response.status_code,
        minutes_until_available=body.minutes_until_available,
    )
