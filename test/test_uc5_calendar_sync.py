from datetime import datetime

from integration.calendar_integration import CalendarIntegration, event_window
from schedule_ai.models import ExtractedEvent

from conftest import FakeCalendarService


def _event(id, title, start="09:00", end=None, **kw):
    return ExtractedEvent(
        id=id, schedule_image_id=1, title=title, date="2025-03-03",
        start_time=start, end_time=end, **kw
    )


def test_end_defaults_to_one_hour():
    start, end = event_window(_event(1, "X", start="23:30"))
    assert start == datetime(2025, 3, 3, 23, 30)
    assert end == datetime(2025, 3, 4, 0, 30)


def test_explicit_end_time():
    start, end = event_window(_event(1, "X", start="09:00", end="10:30"))
    assert (end - start).total_seconds() == 90 * 60


def test_event_body():
    cal = CalendarIntegration(service=FakeCalendarService(), time_zone="Europe/Berlin")
    body = cal.build_event_body(_event(1, "Math 101", end="10:30", location="Room 4"))
    assert body["summary"] == "Math 101"
    assert body["location"] == "Room 4"
    assert body["description"] == ""
    assert body["start"] == {"dateTime": "2025-03-03T09:00:00", "timeZone": "Europe/Berlin"}
    assert body["end"] == {"dateTime": "2025-03-03T10:30:00", "timeZone": "Europe/Berlin"}


def test_partial_failure_skips_and_keeps_order():
    service = FakeCalendarService(reject={"B"})
    cal = CalendarIntegration(service=service)

    out = cal.publish([_event(1, "A"), _event(2, "B"), _event(3, "C")])

    assert [p.title for p in out] == ["A", "C"]
    assert [p.extracted_event_id for p in out] == [1, 3]
    assert all(p.external_event_id for p in out)


def test_bad_time_is_a_per_event_failure():
    service = FakeCalendarService()
    cal = CalendarIntegration(service=service)

    out = cal.publish([_event(1, "Bad", start="9am"), _event(2, "Good")])

    assert [p.extracted_event_id for p in out] == [2]
    assert len(service.inserted) == 1


def test_republish_creates_another_entry():
    service = FakeCalendarService()
    cal = CalendarIntegration(service=service)

    out = cal.publish([_event(1, "A", google_event_id="g-old")])

    assert len(out) == 1
    assert len(service.inserted) == 1
