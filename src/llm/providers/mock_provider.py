from __future__ import annotations
import json
import re
from datetime import date
from typing import Optional

from llm.providers.base import LLMProvider

# "Math 101 Mon 9:00-10:30 Room 4" style lines
_LINE = re.compile(
    r"^(?P<title>.+?)\s+(?P<start>\d{1,2}:\d{2})(?:\s*-\s*(?P<end>\d{1,2}:\d{2}))?(?:\s+(?P<location>.+))?$"
)


class MockProvider(LLMProvider):
    def generate(self, *, system: str, user: str, image: Optional[bytes] = None) -> str:
        """
        Returns a deterministic schedule JSON for local development: one event
        per line that contains a start time, all dated today.
        """
        text = user.split("\n\n", 1)[-1]
        events = []
        for line in text.splitlines():
            m = _LINE.match(line.strip())
            if not m:
                continue
            events.append({
                "title": m.group("title"),
                "date": date.today().isoformat(),
                "startTime": m.group("start").zfill(5),
                "endTime": m.group("end").zfill(5) if m.group("end") else None,
                "location": m.group("location"),
                "description": None,
            })

        return json.dumps({
            "events": events,
            "confidence": 0.9 if events else 0.1,
            "originalText": text,
        })
