from __future__ import annotations
from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict

class ScheduleCompletion(BaseModel):
    """Envelope the schedule prompt asks the model to return.

    Events stay loose dicts here: the parser checks required fields itself so
    a missing field is reported as such and not as a format error.
    """

    model_config = ConfigDict(extra="ignore")

    events: List[Dict[str, Any]]
    confidence: Any = None
    originalText: Any = None
