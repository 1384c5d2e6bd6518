def test_metrics_endpoint_exposes_pipeline_metrics(client):
    client.post(
        "/api/upload-schedule",
        files={"image": ("schedule.png", b"\x89PNG fake", "image/png")},
    )

    r = client.get("/metrics")
    assert r.status_code == 200
    body = r.text
    assert "schedule_requests_total" in body
    assert "schedule_images_processed_total" in body
    assert "schedule_pipeline_stage_seconds" in body
    assert "schedule_jobs_in_flight" in body


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["record_store"] == "MemoryRecordStore"
    assert body["jobs_in_flight"] == 0
