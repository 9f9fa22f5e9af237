"""Error types for schedule retrieval and calendar parsing."""
from typing import Optional


class ScheduleError(Exception):
    """Base exception for schedule sync errors."""


class RetrievalFailed(ScheduleError):
    """Calendar payload could not be retrieved (network, URL or HTTP error)."""


class SelectionTooLarge(RetrievalFailed):
    """Too many groups selected for a single calendar request."""

    def __init__(self, count: int, limit: int):
        super().__init__(
            f"{count} groups selected, at most {limit} can be fetched at once"
        )
        self.count = count
        self.limit = limit


class CalendarParseError(ScheduleError):
    """Problem with a single calendar record. Never aborts the feed."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class MalformedTimestamp(CalendarParseError):
    """DTSTART/DTEND value does not match yyyyMMdd'T'HHmmss."""

    def __init__(self, field: str, line_number: Optional[int] = None):
        super().__init__(f"malformed timestamp {field!r}", line_number)
        self.field = field


class IncompleteEvent(CalendarParseError):
    """VEVENT closed or abandoned without a usable start instant."""

    def __init__(self, title: str = '', line_number: Optional[int] = None,
                 reason: str = 'event has no start time'):
        label = f"'{title}'" if title else 'untitled event'
        super().__init__(f"{label}: {reason}", line_number)
        self.title = title
