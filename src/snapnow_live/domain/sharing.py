"""Sharing state surfaced to the host UI.

Exactly one state holds at a time. ``WaitingForWindow`` takes priority over
everything else: while it is shown, the state it masks is kept in ``resume``
and keeps receiving transitions, so it can be restored when the window
reopens. ``PermissionDenied``, ``InvalidSchedule`` and ``Ended`` are terminal
for the lifetime of a mounted session.
"""

from collections.abc import Callable
from dataclasses import dataclass, replace

from snapnow_live.domain.locations import LocationSample


@dataclass(frozen=True)
class Idle:
    """Window is open but nothing is being shared."""

    error: str | None = None


@dataclass(frozen=True)
class Starting:
    """Sharing requested; waiting for the first fix or a denial."""

    error: str | None = None


@dataclass(frozen=True)
class Sharing:
    """Actively publishing this device's location."""

    current_location: LocationSample | None = None
    error: str | None = None


@dataclass(frozen=True)
class PermissionDenied:
    """The user declined location access."""


@dataclass(frozen=True)
class InvalidSchedule:
    """The booking's schedule could not be interpreted."""

    reason: str


@dataclass(frozen=True)
class Ended:
    """The sharing window has closed for good."""


@dataclass(frozen=True)
class WaitingForWindow:
    """Sharing is not yet permitted."""

    minutes_until_available: int
    resume: "ActiveState | None" = None


ActiveState = Idle | Starting | Sharing | PermissionDenied
SharingState = ActiveState | WaitingForWindow | InvalidSchedule | Ended

TERMINAL_STATES = (PermissionDenied, InvalidSchedule, Ended)


def initial_state() -> SharingState:
    """Return the state of a freshly mounted session."""
    return Idle()


def is_terminal(state: SharingState) -> bool:
    """Return true when no transition can leave ``state``."""
    if isinstance(state, WaitingForWindow):
        return isinstance(state.resume, PermissionDenied)
    return isinstance(state, TERMINAL_STATES)


def underlying(state: SharingState) -> SharingState:
    """Return the state hidden behind a waiting countdown, if any."""
    if isinstance(state, WaitingForWindow):
        return state.resume or Idle()
    return state


def window_closed(state: SharingState, minutes_until_available: int) -> SharingState:
    """Show the countdown, keeping the current state to resume later."""
    if isinstance(state, InvalidSchedule | Ended):
        return state
    if isinstance(state, WaitingForWindow):
        return replace(state, minutes_until_available=minutes_until_available)
    return _waiting(minutes_until_available, state)


def window_opened(state: SharingState) -> SharingState:
    """Drop the countdown and restore whatever it was masking."""
    if isinstance(state, WaitingForWindow):
        return state.resume or Idle()
    return state


def window_ended(state: SharingState) -> SharingState:
    """Close the window permanently."""
    if isinstance(state, InvalidSchedule):
        return state
    return Ended()


def schedule_invalid(state: SharingState, reason: str) -> SharingState:
    """Fail closed on a schedule that cannot be parsed."""
    return InvalidSchedule(reason)


def sharing_started(state: SharingState) -> SharingState:
    """Enter ``Starting`` after a watch was opened."""
    return _apply(state, lambda _: Starting())


def sample_received(state: SharingState, sample: LocationSample) -> SharingState:
    """Record a fix; the first one moves ``Starting`` to ``Sharing``."""

    def _on(active: ActiveState) -> ActiveState:
        if isinstance(active, Sharing):
            return replace(active, current_location=sample)
        if isinstance(active, Starting):
            return Sharing(current_location=sample, error=active.error)
        return active

    return _apply(state, _on)


def error_reported(state: SharingState, message: str | None) -> SharingState:
    """Set or clear the inline error banner."""

    def _on(active: ActiveState) -> ActiveState:
        if isinstance(active, PermissionDenied):
            return active
        return replace(active, error=message)

    return _apply(state, _on)


def permission_denied(state: SharingState) -> SharingState:
    """Enter the terminal denial state."""
    return _apply(state, lambda _: PermissionDenied())


def sharing_stopped(state: SharingState) -> SharingState:
    """Return to ``Idle`` after sharing was stopped."""

    def _on(active: ActiveState) -> ActiveState:
        if isinstance(active, Starting | Sharing):
            return Idle(error=active.error)
        return active

    return _apply(state, _on)


def _apply(
    state: SharingState, transition: Callable[[ActiveState], ActiveState]
) -> SharingState:
    if isinstance(state, InvalidSchedule | Ended | PermissionDenied):
        return state
    if isinstance(state, WaitingForWindow):
        resume = state.resume or Idle()
        if isinstance(resume, PermissionDenied):
            return state
        return _waiting(state.minutes_until_available, transition(resume))
    return transition(state)


def _waiting(minutes_until_available: int, resume: ActiveState) -> WaitingForWindow:
    # A plain Idle is what an empty resume restores to.
    return WaitingForWindow(
        minutes_until_available, resume=None if resume == Idle() else resume
    )
