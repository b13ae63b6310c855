"""Geolocation capability used to watch the device position."""

import asyncio
import itertools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from snapnow_live.domain.locations import LocationSample

logger = logging.getLogger(__name__)

PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3


@dataclass(frozen=True)
class GeolocationOptions:
    """Options for a continuous position watch."""

    enable_high_accuracy: bool = True
    timeout_ms: int = 10_000
    maximum_age_ms: int = 5_000


class GeolocationError(Exception):
    """Error reported by the platform for a watch."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def is_permission_denied(self) -> bool:
        """Return true when the user declined location access."""
        return self.code == PERMISSION_DENIED


SuccessCallback = Callable[[LocationSample], None]
ErrorCallback = Callable[[GeolocationError], None]


class Geolocation(Protocol):
    """Platform geolocation capability."""

    def watch_position(
        self,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
        options: GeolocationOptions,
    ) -> int:
        """Start a watch and return its handle."""

    def clear_watch(self, handle: int) -> None:
        """Cancel a watch; unknown handles are ignored."""


class PositionProvider(Protocol):
    """Source of raw position fixes."""

    async def read_position(self, high_accuracy: bool) -> LocationSample:
        """Return the next fix.

        Raises PermissionError when access is refused and LookupError when no
        position can be determined.
        """


@dataclass(frozen=True, eq=False)
class _Fix:
    taken_at: float
    sample: LocationSample


@dataclass
class AsyncioGeolocation:
    """Geolocation built on a position provider and asyncio tasks.

    Each watch runs as its own task, reading a fix every ``interval_seconds``.
    A fix younger than ``maximum_age_ms`` is reused instead of asking the
    provider again, and each read is bounded by ``timeout_ms``. A watch reports
    a given fix only once, and provider failures other than a refused
    permission are reported as ``POSITION_UNAVAILABLE`` without ending it.
    """

    provider: PositionProvider
    interval_seconds: float = 1.0
    _watches: dict[int, asyncio.Task[None]] = field(default_factory=dict)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))
    _last_fix: _Fix | None = None

    def watch_position(
        self,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
        options: GeolocationOptions,
    ) -> int:
        """Start a watch task and return its handle."""
        handle = next(self._ids)
        task = asyncio.get_running_loop().create_task(
            self._run(handle, on_success, on_error, options)
        )
        self._watches[handle] = task
        task.add_done_callback(lambda _: self._forget(handle, task))
        return handle

    def clear_watch(self, handle: int) -> None:
        """Cancel the watch task behind ``handle``."""
        task = self._watches.pop(handle, None)
        if task is not None:
            task.cancel()

    def active_watches(self) -> int:
        """Return the number of running watches."""
        return len(self._watches)

    def _forget(self, handle: int, task: asyncio.Task[None]) -> None:
        if self._watches.get(handle) is task:
            del self._watches[handle]

    async def _run(
        self,
        handle: int,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
        options: GeolocationOptions,
    ) -> None:
        # Each fix is delivered to a watch at most once.
        delivered: _Fix | None = None
        while handle in self._watches:
            try:
                fix = await self._read(options)
            except GeolocationError as exc:
                on_error(exc)
                if exc.is_permission_denied:
                    return
            else:
                if fix is not delivered:
                    delivered = fix
                    try:
                        on_success(fix.sample)
                    except Exception:
                        logger.exception(
                            "Position callback failed", extra={"watch": handle}
                        )
            await asyncio.sleep(self.interval_seconds)

    async def _read(self, options: GeolocationOptions) -> _Fix:
        if self._last_fix is not None:
            age_ms = (time.monotonic() - self._last_fix.taken_at) * 1000
            if age_ms <= options.maximum_age_ms:
                return self._last_fix
        try:
            sample = await asyncio.wait_for(
                self.provider.read_position(options.enable_high_accuracy),
                timeout=options.timeout_ms / 1000,
            )
        except TimeoutError as exc:
            raise GeolocationError(TIMEOUT, "Timeout expired") from exc
        except PermissionError as exc:
            raise GeolocationError(
                PERMISSION_DENIED, str(exc) or "User denied Geolocation"
            ) from exc
        except Exception as exc:
            logger.warning(
                "Position provider failed", extra={"error": str(exc)}, exc_info=True
            )
            raise GeolocationError(
                POSITION_UNAVAILABLE, str(exc) or "Position unavailable"
            ) from exc
        self._last_fix = _Fix(time.monotonic(), sample)
        return self._last_fix

