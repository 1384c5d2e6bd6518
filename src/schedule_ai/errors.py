"""Error taxonomy for the schedule processing pipeline.

Unreadable uploads are not wrapped: they surface as the builtin ``OSError``
raised by the file read.
"""


class ScheduleError(Exception):
    """Base class for errors raised by the schedule pipeline and its stores."""


class EmptyTextError(ScheduleError):
    """OCR found no readable text in the image."""


class ScheduleParseError(ScheduleError):
    """The AI parser returned output the pipeline cannot use."""


class ParseFormatError(ScheduleParseError):
    """Parser output is not a JSON object carrying a list of events."""


class MissingFieldError(ScheduleParseError):
    """A parsed event lacks a title, date or start time."""


class ExternalServiceError(ScheduleError):
    """An OCR, AI or calendar call itself failed."""


class NotFoundError(ScheduleError):
    """Unknown schedule, event or account id."""


class AuthRequiredError(ScheduleError):
    """The account has no connected Google Calendar."""
