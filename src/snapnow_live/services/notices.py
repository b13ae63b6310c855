"""User-facing notices raised by the sharing core."""

import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    """A short message for the user, shown once."""

    title: str
    description: str
    destructive: bool = False


NOT_SUPPORTED = Notice(
    "Not Supported", "Your device doesn't support location sharing", destructive=True
)
PERMISSION_DENIED = Notice(
    "Permission Denied",
    "Please allow location access to share your location",
    destructive=True,
)
SHARING_STARTED = Notice(
    "Location Sharing Started", "The other party can now see your location"
)
SHARING_STOPPED = Notice(
    "Location Sharing Stopped", "Your location is no longer visible"
)


class NoticeSink(Protocol):
    """Destination for user-facing notices."""

    def notify(self, notice: Notice) -> None:
        """Show a notice to the user."""


@dataclass
class LoggingNoticeSink(NoticeSink):
    """Notice sink that writes notices to the log."""

    def notify(self, notice: Notice) -> None:
        """Log the notice."""
        level = logging.WARNING if notice.destructive else logging.INFO
        logger.log(level, "%s: %s", notice.title, notice.description)
