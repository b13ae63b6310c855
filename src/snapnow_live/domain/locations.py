"""Location values and their wire representations."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class LocationSample:
    """A single position fix produced by the device."""

    lat: float
    lng: float
    accuracy: float | None = None


@dataclass(frozen=True)
class CounterpartyLocation:
    """Last known position of the other party in a booking."""

    lat: float
    lng: float
    updated_at: datetime | None


class LocationUpdate(BaseModel):
    """Request body for publishing a location sample."""

    model_config = ConfigDict(populate_by_name=True)

    latitude: float
    longitude: float
    accuracy: float | None = None
    user_type: str = Field(alias="userType")

    @classmethod
    def from_sample(cls, sample: LocationSample, user_type: str) -> "LocationUpdate":
        """Build the request body for a sample."""
        return cls(
            latitude=sample.lat,
            longitude=sample.lng,
            accuracy=sample.accuracy,
            user_type=user_type,
        )

    def to_payload(self) -> dict[str, object]:
        """Serialize with server field names, omitting unknown accuracy."""
        return self.model_dump(by_alias=True, exclude_none=True)


class LiveLocationRecord(BaseModel):
    """Stored location returned by the server.

    Coordinates are persisted as decimal strings server-side and arrive as
    strings; they are coerced to floats here.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    latitude: float
    longitude: float
    accuracy: float | None = None
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    def to_counterparty(self) -> CounterpartyLocation:
        """Convert to the value handed to the host UI."""
        return CounterpartyLocation(
            lat=self.latitude, lng=self.longitude, updated_at=self.updated_at
        )


class LocationErrorBody(BaseModel):
    """Error payload returned when a location update is rejected."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    error: str | None = None
    minutes_until_available: int | None = Field(
        default=None, alias="minutesUntilAvailable"
    )
