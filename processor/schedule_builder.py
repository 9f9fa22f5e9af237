"""Builder ordering day buckets into a chronological schedule."""
import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from processor.calendar_parser import parse_day_label
from processor.datetime_decoder import DEFAULT_TIMEZONE
from processor.models import DaySchedule, Event

logger = logging.getLogger(__name__)


class ScheduleBuilder:
    """Orders day buckets ascending by the calendar day they represent."""

    def __init__(self, timezone: str = DEFAULT_TIMEZONE,
                 sort_within_day: bool = False):
        """
        Initialize the builder.

        Args:
            timezone: Zone in which an event's start decides its day; must
                match the zone the parser labelled buckets with
            sort_within_day: Sort events of a day by start time instead of
                keeping feed order
        """
        self.timezone = ZoneInfo(timezone)
        self.sort_within_day = sort_within_day

    def build(self, buckets: Dict[str, List[Event]]) -> List[DaySchedule]:
        """
        Build the schedule from day buckets.

        The day of each bucket is taken from the start instant its events
        carry. The label is re-parsed only when no event has a start; a
        label that cannot be parsed sorts after every dated bucket.

        Args:
            buckets: Mapping of day label to events in feed order

        Returns:
            List of DaySchedule ascending by day
        """
        dated: List[Tuple[Tuple[int, date], DaySchedule]] = []
        today = datetime.now(self.timezone).date()

        for label, events in buckets.items():
            day = self._bucket_day(events)
            if day is None:
                try:
                    day = parse_day_label(label, today.year)
                except ValueError:
                    logger.warning(f"Cannot determine the day of bucket '{label}'")

            if self.sort_within_day:
                events = sorted(events, key=self._start_key)
            else:
                events = list(events)

            if day is None:
                sort_key = (1, date.max)
                day = date.max
            else:
                sort_key = (0, day)
            dated.append((sort_key, DaySchedule(label=label, day=day, events=events)))

        dated.sort(key=lambda item: item[0])
        schedule = [day_schedule for _, day_schedule in dated]

        logger.info(f"Built schedule with {len(schedule)} days")
        return schedule

    def _bucket_day(self, events: List[Event]) -> Optional[date]:
        for event in events:
            if event.start is not None:
                return event.start.astimezone(self.timezone).date()
        return None

    def _start_key(self, event: Event) -> Tuple[int, float]:
        if event.start is None:
            return (1, 0.0)
        return (0, event.start.timestamp())
