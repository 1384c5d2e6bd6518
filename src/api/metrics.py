from prometheus_client import Counter, Histogram, Gauge, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # Counters register under several sample names; the base name may be suffixed
        return REGISTRY._names_to_collectors.get(
            name, REGISTRY._names_to_collectors.get(f"{name}_total")
        )


REQUESTS_TOTAL = get_or_create_metric(
    "schedule_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "schedule_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

SCHEDULES_PROCESSED_TOTAL = get_or_create_metric(
    "schedule_images_processed_total",
    "Schedule images that reached a terminal status",
    Counter,
    labelnames=["status"],
)

PIPELINE_STAGE_SECONDS = get_or_create_metric(
    "schedule_pipeline_stage_seconds",
    "Time spent per pipeline stage",
    Histogram,
    labelnames=["stage"],
)

EVENTS_EXTRACTED_TOTAL = get_or_create_metric(
    "schedule_events_extracted_total", "Total events extracted from schedule images", Counter
)

EVENTS_PUBLISHED_TOTAL = get_or_create_metric(
    "schedule_events_published_total", "Total events created in Google Calendar", Counter
)

PUBLISH_FAILURES_TOTAL = get_or_create_metric(
    "schedule_publish_failures_total", "Selected events the calendar rejected", Counter
)

JOBS_IN_FLIGHT = get_or_create_metric(
    "schedule_jobs_in_flight", "Processing jobs queued or running", Gauge
)
