"""Line-oriented parser turning calendar text into day-bucketed events."""
import enum
import logging
from datetime import date, datetime
from typing import Optional, Union

from processor.datetime_decoder import DateTimeDecoder
from processor.errors import IncompleteEvent
from processor.models import Event, ParseResult

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = (
    'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday',
    'Sunday',
)
MONTH_ABBREVIATIONS = (
    'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
    'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec',
)

PARAGRAPH_BREAK = '\\n\\n'
LINE_BREAK = '\\n'


def format_day_label(value: Union[date, datetime]) -> str:
    """
    Format a day label such as "Wednesday, Jan 10".

    Names come from fixed tables so labels do not depend on the locale.
    """
    return (
        f"{WEEKDAY_NAMES[value.weekday()]}, "
        f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.day}"
    )


def parse_day_label(label: str, year: int) -> date:
    """
    Parse a label produced by format_day_label back into a date.

    Labels carry no year, so the caller supplies it.

    Raises:
        ValueError: If the label is not in the expected format
    """
    try:
        weekday_name, month_day = label.split(', ', 1)
        month_name, day = month_day.split(' ', 1)
        parsed = date(year, MONTH_ABBREVIATIONS.index(month_name) + 1, int(day))
    except ValueError as e:
        raise ValueError(f"Invalid day label: {label!r}") from e

    if weekday_name not in WEEKDAY_NAMES:
        raise ValueError(f"Invalid day label: {label!r}")
    return parsed


def summarize_description(value: str) -> str:
    """
    Reduce a DESCRIPTION value to a one-line summary.

    Keeps the first non-empty paragraph (paragraphs are separated by an
    escaped blank line) and turns escaped newlines into spaces.
    """
    paragraphs = [part for part in value.split(PARAGRAPH_BREAK) if part]
    if not paragraphs:
        return ''
    return paragraphs[0].replace(LINE_BREAK, ' ')


class ParserState(enum.Enum):
    OUTSIDE = 'outside'
    IN_EVENT = 'in_event'
    IN_ALARM = 'in_alarm'


class CalendarRecordParser:
    """Single-pass state machine over VEVENT/VALARM blocks."""

    def __init__(self, decoder: Optional[DateTimeDecoder] = None):
        """
        Initialize the parser.

        Args:
            decoder: Timestamp decoder; its default zone also decides which
                calendar day an event belongs to
        """
        self.decoder = decoder or DateTimeDecoder()

    def parse(self, payload: Union[str, bytes]) -> ParseResult:
        """
        Parse calendar text into day buckets.

        Args:
            payload: Calendar text, or UTF-8 encoded bytes

        Returns:
            ParseResult with buckets keyed by day label in first-seen order,
            and the errors of records that could not be used
        """
        if isinstance(payload, bytes):
            payload = payload.decode('utf-8', errors='replace')

        result = ParseResult()
        state = ParserState.OUTSIDE
        current: Optional[Event] = None
        begin_line = 0

        for line_number, raw_line in enumerate(payload.split('\n'), start=1):
            line = raw_line.rstrip('\r')

            if line.startswith('BEGIN:VEVENT'):
                if current is not None:
                    result.errors.append(IncompleteEvent(
                        current.title, begin_line, reason='missing END:VEVENT'
                    ))
                current = Event()
                begin_line = line_number
                state = ParserState.IN_EVENT
                continue

            if line.startswith('END:VEVENT'):
                if current is None:
                    logger.debug(f"Ignoring END:VEVENT outside an event at line {line_number}")
                else:
                    self._finish_event(current, line_number, result)
                current = None
                state = ParserState.OUTSIDE
                continue

            if current is None:
                continue

            if line.startswith('BEGIN:VALARM'):
                state = ParserState.IN_ALARM
            elif line.startswith('END:VALARM'):
                state = ParserState.IN_EVENT
            elif line.startswith('SUMMARY:'):
                current.title = line[len('SUMMARY:'):]
            elif self._is_property(line, 'DTSTART'):
                current.start = self._decode(line, 'DTSTART', line_number, result)
            elif self._is_property(line, 'DTEND'):
                current.end = self._decode(line, 'DTEND', line_number, result)
            elif line.startswith('LOCATION:'):
                current.location = line[len('LOCATION:'):]
            elif line.startswith('DESCRIPTION:') and state is ParserState.IN_EVENT:
                current.description = summarize_description(
                    line[len('DESCRIPTION:'):]
                )

        if current is not None:
            result.errors.append(IncompleteEvent(
                current.title, begin_line, reason='missing END:VEVENT'
            ))

        for error in result.errors:
            logger.warning(f"Skipped calendar data: {error}")

        logger.info(
            f"Parsed {result.event_count} events into {len(result.buckets)} days "
            f"({len(result.errors)} errors)"
        )
        return result

    def day_label(self, start: datetime) -> str:
        return format_day_label(start.astimezone(self.decoder.default_timezone))

    def _finish_event(self, event: Event, line_number: int,
                      result: ParseResult) -> None:
        if event.start is None:
            result.errors.append(IncompleteEvent(event.title, line_number))
            return

        if event.end is not None and event.end < event.start:
            logger.warning(
                f"Event '{event.title}' ends before it starts "
                f"({event.start.isoformat()} > {event.end.isoformat()})"
            )

        result.buckets.setdefault(self.day_label(event.start), []).append(event)

    def _decode(self, line: str, name: str, line_number: int,
                result: ParseResult) -> Optional[datetime]:
        value, errors = self.decoder.decode(line[len(name) + 1:], line_number)
        result.errors.extend(errors)
        return value

    @staticmethod
    def _is_property(line: str, name: str) -> bool:
        return line.startswith(name) and line[len(name):len(name) + 1] in (';', ':')
