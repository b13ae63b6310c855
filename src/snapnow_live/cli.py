"""Command line entry point for running a live location session."""

import argparse
import asyncio
import logging
from collections.abc import Sequence

from snapnow_live.adapters.geolocation import AsyncioGeolocation, PositionProvider
from snapnow_live.adapters.position_providers import (
    StaticPositionProvider,
    TrackPositionProvider,
)
from snapnow_live.app_logging import configure_logging
from snapnow_live.containers import build_container
from snapnow_live.domain import sharing
from snapnow_live.domain.bookings import CONFIRMED, USER_TYPES, Booking
from snapnow_live.domain.locations import CounterpartyLocation, LocationSample
from snapnow_live.domain.sharing import SharingState
from snapnow_live.services.notices import Notice

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="snapnow-live", description="SnapNow live location sharing"
    )
    subcommands = parser.add_subparsers(dest="command", required=True)
    share = subcommands.add_parser("share", help="Share location for a booking")
    share.add_argument("--booking-id", required=True)
    share.add_argument("--date", required=True, help="Scheduled date, YYYY-MM-DD")
    share.add_argument("--time", required=True, help='Scheduled time, e.g. "2:30 PM"')
    share.add_argument("--user-type", choices=sorted(USER_TYPES), default="customer")
    share.add_argument("--status", default=CONFIRMED)
    share.add_argument(
        "--duration-minutes", type=int, help="Booked session length in minutes"
    )
    source = share.add_mutually_exclusive_group(required=True)
    source.add_argument("--track", help="JSON file with recorded fixes")
    source.add_argument("--lat", type=float)
    share.add_argument("--lng", type=float)
    share.add_argument("--accuracy", type=float)
    share.add_argument(
        "--fix-interval", type=float, default=5.0, help="Seconds between fixes"
    )
    share.add_argument("--verbose", action="store_true")
    return parser


def describe_state(state: SharingState) -> str:
    """Render a state as a single line."""
    if isinstance(state, sharing.WaitingForWindow):
        minutes = state.minutes_until_available
        suffix = "s" if minutes > 1 else ""
        return f"Available in {minutes} minute{suffix}"
    if isinstance(state, sharing.PermissionDenied):
        return "Location permission denied"
    if isinstance(state, sharing.InvalidSchedule):
        return f"Cannot share: {state.reason}"
    if isinstance(state, sharing.Ended):
        return "Sharing window has ended"
    if isinstance(state, sharing.Sharing):
        line = "Sharing location"
        if state.current_location:
            location = state.current_location
            line += f" {location.lat:.4f}, {location.lng:.4f}"
        return line + (f" ({state.error})" if state.error else "")
    if isinstance(state, sharing.Starting):
        return "Starting location sharing"
    return "Not sharing" + (f" ({state.error})" if state.error else "")


class _ConsoleNoticeSink:
    def notify(self, notice: Notice) -> None:
        print(f"[{notice.title}] {notice.description}")


def _provider(args: argparse.Namespace) -> PositionProvider:
    if args.track:
        return TrackPositionProvider.from_file(args.track)
    if args.lng is None:
        raise SystemExit("--lng is required with --lat")
    return StaticPositionProvider(LocationSample(args.lat, args.lng, args.accuracy))


def _print_counterparty(location: CounterpartyLocation | None) -> None:
    if location is None:
        print("Other party: not sharing")
        return
    print(f"Other party: {location.lat:.4f}, {location.lng:.4f}")


async def run_share(args: argparse.Namespace) -> None:
    """Run a session until cancelled."""
    container = build_container()
    booking = Booking(
        id=args.booking_id,
        scheduled_date=args.date,
        scheduled_time=args.time,
        user_type=args.user_type,
        status=args.status,
        duration_minutes=args.duration_minutes,
    )
    geolocation = AsyncioGeolocation(_provider(args), interval_seconds=args.fix_interval)
    session = container.session_factory.create(
        booking,
        geolocation,
        on_state_change=lambda state: print(describe_state(state)),
        on_other_party_location=_print_counterparty,
        notice_sink=_ConsoleNoticeSink(),
    )
    try:
        async with session:
            print(describe_state(session.state))
            await asyncio.Event().wait()
    finally:
        await container.close_resources()


def main(argv: Sequence[str] | None = None) -> None:
    """Parse arguments and run the requested command."""
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    if args.command == "share":
        try:
            asyncio.run(run_share(args))
        except KeyboardInterrupt:
            logger.info("Interrupted")


if __name__ == "__main__":
    main()
