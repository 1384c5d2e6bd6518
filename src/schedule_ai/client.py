from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional

import httpx

from schedule_ai.models import ProcessingStatus

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 2.0

_CONTENT_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


class ScheduleClient:
    """HTTP client for the schedule API, including status polling."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        user_id: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        headers = {"X-User-Id": str(user_id)} if user_id is not None else {}
        self._http = httpx.Client(
            base_url=base_url, headers=headers, timeout=30.0, transport=transport
        )
        self._sleep = sleep

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ScheduleClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs) -> Any:
        r = self._http.request(method, url, **kwargs)
        r.raise_for_status()
        return r.json()

    def upload_schedule(self, path: str | Path) -> int:
        path = Path(path)
        content_type = _CONTENT_TYPES.get(path.suffix.lower(), "application/octet-stream")
        with path.open("rb") as fh:
            data = self._request(
                "POST", "/api/upload-schedule", files={"image": (path.name, fh, content_type)}
            )
        return data["scheduleImageId"]

    def get_schedule(self, schedule_id: int) -> dict:
        return self._request("GET", f"/api/schedule/{schedule_id}")

    def wait_for_schedule(
        self,
        schedule_id: int,
        interval: float = POLL_INTERVAL_S,
        timeout: Optional[float] = None,
    ) -> dict:
        """Poll until the schedule reaches a terminal status and return that payload."""
        deadline = time.monotonic() + timeout if timeout is not None else None
        while True:
            payload = self.get_schedule(schedule_id)
            status = ProcessingStatus(payload["schedule"]["processingStatus"])
            if status.is_terminal:
                return payload
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(
                    f"Schedule {schedule_id} still {status.value} after {timeout}s"
                )
            logger.debug(f"Schedule {schedule_id} is {status.value}, polling again")
            self._sleep(interval)

    def update_event(self, event_id: int, **changes) -> dict:
        return self._request("PATCH", f"/api/events/{event_id}", json=changes)

    def delete_event(self, event_id: int) -> None:
        self._request("DELETE", f"/api/events/{event_id}")

    def create_calendar_events(self, event_ids: list[int]) -> list[dict]:
        data = self._request(
            "POST", "/api/create-calendar-events", json={"eventIds": list(event_ids)}
        )
        return data["createdEvents"]

    def get_auth_url(self) -> str:
        return self._request("GET", "/api/auth/google")["authUrl"]

    def get_auth_status(self) -> bool:
        return self._request("GET", "/api/auth/status")["isConnected"]
