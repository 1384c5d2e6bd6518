import asyncio

from schedule_ai.errors import EmptyTextError

from conftest import MATH_TEXT, FakeCredentials, FakeOCR

PNG = ("schedule.png", b"\x89PNG\r\n\x1a\n fake", "image/png")


def _upload(client, file=PNG):
    return client.post("/api/upload-schedule", files={"image": file})


def _schedule(client, schedule_id):
    r = client.get(f"/api/schedule/{schedule_id}")
    assert r.status_code == 200
    return r.json()


def test_upload_then_poll_completed(client, app_state):
    r = _upload(client)
    assert r.status_code == 200
    schedule_id = r.json()["scheduleImageId"]

    body = _schedule(client, schedule_id)
    assert body["schedule"]["processingStatus"] == "completed"
    assert body["schedule"]["originalText"] == MATH_TEXT
    assert body["schedule"]["userId"] == 1

    [event] = body["events"]
    assert event["title"] == "Math 101"
    assert event["startTime"] == "09:00"
    assert event["endTime"] == "10:30"
    assert event["location"] == "Room 4"
    assert event["googleEventId"] is None

    job = app_state.jobs.get(schedule_id)
    assert job.done and job.status == "succeeded"
    assert list(app_state.upload_store.root.iterdir()) == []


def test_upload_without_text_fails(client, app_state):
    app_state.processor.ocr = FakeOCR(error=EmptyTextError("No text detected in the image"))

    schedule_id = _upload(client).json()["scheduleImageId"]

    body = _schedule(client, schedule_id)
    assert body["schedule"]["processingStatus"] == "failed"
    assert body["events"] == []
    assert list(app_state.upload_store.root.iterdir()) == []


def test_upload_requires_file(client):
    r = client.post("/api/upload-schedule", data={"other": "x"})
    assert r.status_code == 400


def test_upload_rejects_other_types(client):
    r = _upload(client, ("notes.pdf", b"%PDF-1.4", "application/pdf"))
    assert r.status_code == 400


def test_upload_rejects_large_files(client, monkeypatch):
    from api.routers import schedules

    monkeypatch.setattr(schedules, "MAX_UPLOAD_BYTES", 8)
    r = _upload(client, ("big.jpg", b"0123456789", "image/jpeg"))
    assert r.status_code == 413


def test_failed_record_creation_removes_file(client, app_state, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(app_state.record_store, "create_schedule_image", broken)

    r = _upload(client)
    assert r.status_code == 500
    assert list(app_state.upload_store.root.iterdir()) == []
    assert app_state.jobs.pending() == []


def test_unknown_schedule(client):
    assert client.get("/api/schedule/999").status_code == 404


def test_unknown_account(client):
    r = client.get("/api/auth/status", headers={"X-User-Id": "77"})
    assert r.status_code == 404


def test_patch_date_round_trip(client):
    schedule_id = _upload(client).json()["scheduleImageId"]
    [before] = _schedule(client, schedule_id)["events"]

    r = client.patch(f"/api/events/{before['id']}", json={"date": "2025-03-01"})
    assert r.status_code == 200

    [after] = _schedule(client, schedule_id)["events"]
    assert after["date"] == "2025-03-01"
    assert {k: v for k, v in after.items() if k != "date"} == {
        k: v for k, v in before.items() if k != "date"
    }


def test_patch_rejects_blank_title(client):
    schedule_id = _upload(client).json()["scheduleImageId"]
    [event] = _schedule(client, schedule_id)["events"]

    r = client.patch(f"/api/events/{event['id']}", json={"title": "  "})
    assert r.status_code == 422


def test_patch_rejects_null_confirmation(client):
    schedule_id = _upload(client).json()["scheduleImageId"]
    [event] = _schedule(client, schedule_id)["events"]

    r = client.patch(f"/api/events/{event['id']}", json={"isConfirmed": None})
    assert r.status_code == 422

    [after] = _schedule(client, schedule_id)["events"]
    assert after["isConfirmed"] is False


def test_patch_unknown_event(client):
    assert client.patch("/api/events/999", json={"title": "x"}).status_code == 404


def test_delete_keeps_schedule_status(client):
    schedule_id = _upload(client).json()["scheduleImageId"]
    [event] = _schedule(client, schedule_id)["events"]

    r = client.delete(f"/api/events/{event['id']}")
    assert r.status_code == 200

    body = _schedule(client, schedule_id)
    assert body["events"] == []
    assert body["schedule"]["processingStatus"] == "completed"

    assert client.delete(f"/api/events/{event['id']}").status_code == 404


def test_auth_status_reflects_stored_tokens(client, app_state):
    assert client.get("/api/auth/status").json() == {"isConnected": False}

    asyncio.run(app_state.google_auth_store.save_credentials(1, FakeCredentials()))
    assert client.get("/api/auth/status").json() == {"isConnected": True}

    assert client.post("/api/auth/google/disconnect").json() == {"status": "disconnected"}
    assert client.get("/api/auth/status").json() == {"isConnected": False}


def test_auth_url_carries_account(client, monkeypatch):
    from integration import google_oauth

    seen = {}

    def fake_get_auth_url(state):
        seen["state"] = state
        return "https://accounts.example/consent"

    monkeypatch.setattr(google_oauth, "get_auth_url", fake_get_auth_url)

    r = client.get("/api/auth/google")
    assert r.json() == {"authUrl": "https://accounts.example/consent"}
    assert seen["state"] == "1"


def test_callback_stores_tokens_and_redirects(client, app_state, monkeypatch):
    from integration import google_oauth

    monkeypatch.setattr(google_oauth, "exchange_code", lambda code: FakeCredentials("tok", "ref"))

    r = client.get("/auth/google/callback?code=abc&state=1", follow_redirects=False)
    assert r.status_code == 307
    assert r.headers["location"].endswith("/?connected=true")
    assert asyncio.run(app_state.google_auth_store.is_connected(1)) is True


def test_callback_failure_redirects_with_error(client, monkeypatch):
    from integration import google_oauth

    def broken(code):
        raise RuntimeError("invalid_grant")

    monkeypatch.setattr(google_oauth, "exchange_code", broken)

    r = client.get("/auth/google/callback?code=abc", follow_redirects=False)
    assert r.status_code == 307
    assert r.headers["location"].endswith("/?error=auth_failed")


def test_callback_requires_code(client):
    assert client.get("/auth/google/callback", follow_redirects=False).status_code == 400
