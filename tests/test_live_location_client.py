"""Tests for the httpx live-location client."""

import asyncio
import json
from datetime import UTC, datetime

import httpx
import pytest

from snapnow_live.adapters.live_location_client import HttpxLiveLocationClient
from snapnow_live.domain.bookings import CUSTOMER, PHOTOGRAPHER
from snapnow_live.domain.errors import (
    LocationFetchError,
    LocationSubmissionError,
    StopSharingError,
)
from snapnow_live.domain.locations import LocationSample, LocationUpdate


def _client(handler) -> HttpxLiveLocationClient:  # type: ignore[no-untyped-def]
    transport = httpx.MockTransport(handler)
    return HttpxLiveLocationClient(
        base_url="https://snapnow.test",
        http_client=httpx.AsyncClient(
            transport=transport, cookies={"connect.sid": "s%3Aabc"}
        ),
    )


def test_publish_posts_numbers_and_user_type() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"latitude": "51.5", "longitude": "-0.12"})

    client = _client(handler)
    update = LocationUpdate.from_sample(LocationSample(51.5, -0.12, 12.0), CUSTOMER)

    record = asyncio.run(client.publish_location("b-1", update))

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/bookings/b-1/live-location"
    assert json.loads(request.content) == {
        "latitude": 51.5,
        "longitude": -0.12,
        "accuracy": 12.0,
        "userType": "customer",
    }
    assert "connect.sid=s%3Aabc" in request.headers["cookie"]
    assert record is not None
    assert record.latitude == 51.5


def test_publish_omits_unknown_accuracy() -> None:
    bodies: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={})

    client = _client(handler)
    update = LocationUpdate.from_sample(LocationSample(1.0, 2.0), PHOTOGRAPHER)

    asyncio.run(client.publish_location("b-1", update))

    assert bodies == [{"latitude": 1.0, "longitude": 2.0, "userType": "photographer"}]


def test_publish_rejection_carries_server_countdown() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={
                "error": "Location sharing is available 10 minutes before",
                "minutesUntilAvailable": 7,
            },
        )

    client = _client(handler)
    update = LocationUpdate.from_sample(LocationSample(1.0, 2.0), CUSTOMER)

    with pytest.raises(LocationSubmissionError) as excinfo:
        asyncio.run(client.publish_location("b-1", update))

    assert excinfo.value.status_code == 400
    assert excinfo.value.minutes_until_available == 7
    assert excinfo.value.is_too_early
    assert "10 minutes" in excinfo.value.message


def test_publish_rejection_without_body_uses_default_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="Internal Server Error")

    client = _client(handler)
    update = LocationUpdate.from_sample(LocationSample(1.0, 2.0), CUSTOMER)

    with pytest.raises(LocationSubmissionError) as excinfo:
        asyncio.run(client.publish_location("b-1", update))

    assert excinfo.value.message == "Failed to update location"
    assert not excinfo.value.is_too_early


def test_publish_transport_failure_is_submission_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client = _client(handler)
    update = LocationUpdate.from_sample(LocationSample(1.0, 2.0), CUSTOMER)

    with pytest.raises(LocationSubmissionError):
        asyncio.run(client.publish_location("b-1", update))


def test_stop_sharing_deletes_and_reports_failure() -> None:
    methods: list[str] = []
    status = {"code": 200}

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(status["code"], json={"success": True})

    client = _client(handler)
    asyncio.run(client.stop_sharing("b-1"))
    status["code"] = 500
    with pytest.raises(StopSharingError):
        asyncio.run(client.stop_sharing("b-1"))

    assert methods == ["DELETE", "DELETE"]


@pytest.mark.parametrize(
    ("user_type", "path"),
    [
        (CUSTOMER, "/api/bookings/b-1/photographer-location"),
        (PHOTOGRAPHER, "/api/bookings/b-1/live-location"),
    ],
)
def test_fetch_counterparty_parses_string_coordinates(user_type: str, path: str) -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(
            200,
            json={
                "id": "loc-1",
                "latitude": "48.8584",
                "longitude": "2.2945",
                "updatedAt": "2026-10-19T13:55:00.000Z",
                "isActive": True,
            },
        )

    client = _client(handler)

    location = asyncio.run(client.fetch_counterparty_location("b-1", user_type))

    assert paths == [path]
    assert location is not None
    assert location.lat == pytest.approx(48.8584)
    assert location.lng == pytest.approx(2.2945)
    assert location.updated_at == datetime(2026, 10, 19, 13, 55, tzinfo=UTC)


@pytest.mark.parametrize("body", [b"null", b"", b"{}"])
def test_fetch_counterparty_without_location_returns_none(body: bytes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body)

    client = _client(handler)

    assert asyncio.run(client.fetch_counterparty_location("b-1", CUSTOMER)) is None


def test_fetch_counterparty_error_raises_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": "Not authorized"})

    client = _client(handler)

    with pytest.raises(LocationFetchError):
        asyncio.run(client.fetch_counterparty_location("b-1", CUSTOMER))


def test_create_sets_session_cookie() -> None:
    client = HttpxLiveLocationClient.create(
        "https://snapnow.test/", session_cookie="abc", timeout=3
    )

    assert client.base_url == "https://snapnow.test"
    assert client.http_client.cookies.get("connect.sid") == "abc"
    assert client.timeout == 3
    asyncio.run(client.close())
