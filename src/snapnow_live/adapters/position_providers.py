"""Position providers backing the asyncio geolocation adapter."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from snapnow_live.domain.locations import LocationSample


@dataclass
class StaticPositionProvider:
    """Provider that always reports the same fix."""

    sample: LocationSample

    async def read_position(self, high_accuracy: bool) -> LocationSample:
        """Return the configured fix."""
        return self.sample


@dataclass
class TrackPositionProvider:
    """Provider that replays a recorded track, holding the last fix at the end."""

    samples: list[LocationSample]
    _index: int = field(default=0, init=False)

    @classmethod
    def from_file(cls, path: str | Path) -> "TrackPositionProvider":
        """Load a JSON list of ``{"lat", "lng", "accuracy"?}`` objects."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError("Track file must contain a JSON list")
        samples = [
            LocationSample(
                lat=float(point["lat"]),
                lng=float(point["lng"]),
                accuracy=(
                    float(point["accuracy"])
                    if point.get("accuracy") is not None
                    else None
                ),
            )
            for point in raw
        ]
        return cls(samples)

    async def read_position(self, high_accuracy: bool) -> LocationSample:
        """Return the next recorded fix."""
        if not self.samples:
            raise LookupError("Track is empty")
        sample = self.samples[min(self._index, len(self.samples) - 1)]
        self._index += 1
        return sample
