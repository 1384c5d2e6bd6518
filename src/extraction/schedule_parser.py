import logging
import math
from datetime import date
from typing import Any, Optional

from pydantic import ValidationError

from llm.llm_client import LLMClient
from llm.schemas import ScheduleCompletion
from schedule_ai.errors import MissingFieldError, ParseFormatError
from schedule_ai.models import ParsedEvent, ParseResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert at parsing schedule information from text extracted via OCR. Your task is to identify individual events/appointments and extract structured information about each one.

Extract the following information for each event:
- title: The name/subject of the event
- date: Date in YYYY-MM-DD format
- startTime: Start time in HH:MM format (24-hour)
- endTime: End time in HH:MM format (24-hour) if available
- location: Location/room if mentioned
- description: Any additional details

Handle various date formats like:
- MM/DD/YYYY, DD/MM/YYYY
- "Monday", "Tuesday", etc. (assume current week)
- "Jan 15", "January 15th", etc.
- Relative dates like "Tomorrow", "Next Monday"

Handle various time formats like:
- 12-hour (9:00 AM, 2:30 PM)
- 24-hour (09:00, 14:30)
- Time ranges (9:00-10:30, 2-4 PM)

If information is missing or unclear, make reasonable assumptions based on context. If no clear date is found, use today's date. If no end time is specified but duration seems implied, estimate a reasonable duration.

Respond ONLY with valid JSON in this exact format:
{
  "events": [
    {
      "title": "Event Title",
      "date": "2024-01-15",
      "startTime": "09:00",
      "endTime": "10:30",
      "location": "Room 101",
      "description": "Additional details"
    }
  ],
  "confidence": 0.85,
  "originalText": "The full extracted text"
}"""

REQUIRED_FIELDS = ("title", "date", "startTime")


def _optional(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clamp_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.5
    # zero and NaN count as "not reported"
    if not confidence or math.isnan(confidence):
        return 0.5
    return min(1.0, max(0.0, confidence))


class ScheduleParser:
    """Turns OCR text (and optionally the image) into validated event drafts."""

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self.llm = llm_client or LLMClient()

    def build_prompt(self, text: str, today: date) -> str:
        return (
            f"Today is {today.strftime('%A')}, {today.isoformat()}. "
            f"Please parse this schedule text and extract all events:\n\n{text}"
        )

    def parse(
        self, text: str, image: Optional[bytes] = None, today: Optional[date] = None
    ) -> ParseResult:
        prompt = self.build_prompt(text, today or date.today())
        data = self.llm.complete_json(system=SYSTEM_PROMPT, user=prompt, image=image)

        try:
            completion = ScheduleCompletion.model_validate(data)
        except ValidationError as e:
            raise ParseFormatError("Invalid response format from AI parsing") from e

        events = [self._validate_event(raw) for raw in completion.events]
        logger.info(f"Parsed {len(events)} events from schedule text")

        return ParseResult(
            events=events,
            confidence=_clamp_confidence(completion.confidence),
            original_text=text,
        )

    @staticmethod
    def _validate_event(raw: dict) -> ParsedEvent:
        values = {name: _optional(raw.get(name)) for name in REQUIRED_FIELDS}
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise MissingFieldError(f"Missing required event fields: {', '.join(missing)}")

        return ParsedEvent(
            title=values["title"],
            date=values["date"],
            start_time=values["startTime"],
            end_time=_optional(raw.get("endTime")),
            location=_optional(raw.get("location")),
            description=_optional(raw.get("description")),
        )
