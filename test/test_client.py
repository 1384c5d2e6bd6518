import json

import httpx
import pytest

from schedule_ai.client import ScheduleClient


def _responder(statuses):
    """Serve the given processing statuses in order, repeating the last one."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        status = statuses[min(len(seen), len(statuses)) - 1]
        return httpx.Response(
            200,
            json={"schedule": {"id": 7, "processingStatus": status}, "events": []},
        )

    return handler, seen


def test_wait_until_completed():
    handler, seen = _responder(["processing", "processing", "completed"])
    sleeps = []

    with ScheduleClient(
        "http://test", user_id=3, transport=httpx.MockTransport(handler), sleep=sleeps.append
    ) as client:
        payload = client.wait_for_schedule(7, interval=0.5)

    assert payload["schedule"]["processingStatus"] == "completed"
    assert len(seen) == 3
    assert sleeps == [0.5, 0.5]
    assert seen[0].url.path == "/api/schedule/7"
    assert seen[0].headers["X-User-Id"] == "3"


def test_failed_is_terminal():
    handler, seen = _responder(["failed"])

    with ScheduleClient("http://test", transport=httpx.MockTransport(handler)) as client:
        payload = client.wait_for_schedule(7)

    assert payload["schedule"]["processingStatus"] == "failed"
    assert len(seen) == 1


def test_wait_times_out():
    handler, seen = _responder(["processing"])

    with ScheduleClient(
        "http://test", transport=httpx.MockTransport(handler), sleep=lambda s: None
    ) as client:
        with pytest.raises(TimeoutError):
            client.wait_for_schedule(7, timeout=0)

    assert len(seen) == 1


def test_publish_sends_event_ids():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/create-calendar-events"
        assert json.loads(request.read()) == {"eventIds": [1, 2]}
        return httpx.Response(
            200,
            json={"message": "ok", "createdEvents": [{"eventId": "g-1", "extractedEventId": 1, "title": "A"}]},
        )

    with ScheduleClient("http://test", transport=httpx.MockTransport(handler)) as client:
        created = client.create_calendar_events([1, 2])

    assert created[0]["eventId"] == "g-1"


def test_http_errors_raise():
    handler = lambda request: httpx.Response(404, json={"detail": "Schedule not found"})

    with ScheduleClient("http://test", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            client.get_schedule(1)
