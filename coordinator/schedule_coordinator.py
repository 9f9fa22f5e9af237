"""Coordinator running fetch, parse and build for a group selection."""
import logging
import threading
from typing import Callable, List, Optional

from processor.calendar_parser import CalendarRecordParser
from processor.errors import CalendarParseError, RetrievalFailed
from processor.models import DaySchedule, GroupSelection
from processor.schedule_builder import ScheduleBuilder

logger = logging.getLogger(__name__)


class ScheduleFetchCoordinator:
    """
    Drives one fetch cycle at a time and publishes the resulting schedule.

    Every call to fetch() takes a new generation number. Results and
    failures of a superseded generation are discarded, so when fetches
    overlap only the most recently requested one is published.
    """

    def __init__(
        self,
        client,
        parser: Optional[CalendarRecordParser] = None,
        builder: Optional[ScheduleBuilder] = None,
        on_publish: Optional[Callable[[List[DaySchedule]], None]] = None,
        on_loading_changed: Optional[Callable[[bool], None]] = None
    ):
        """
        Initialize the coordinator.

        Args:
            client: Retrieval collaborator with fetch_calendar(group_ids, days_ahead)
            parser: Calendar parser (default: CalendarRecordParser())
            builder: Schedule builder (default: ScheduleBuilder())
            on_publish: Called with each newly published schedule
            on_loading_changed: Called whenever the loading flag changes
        """
        self.client = client
        self.parser = parser or CalendarRecordParser()
        self.builder = builder or ScheduleBuilder()
        self.on_publish = on_publish
        self.on_loading_changed = on_loading_changed

        self._lock = threading.RLock()
        self._generation = 0
        self._is_loading = False
        self._schedule: List[DaySchedule] = []
        self._last_errors: List[CalendarParseError] = []

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def schedule(self) -> List[DaySchedule]:
        return self._schedule

    @property
    def last_errors(self) -> List[CalendarParseError]:
        return self._last_errors

    @property
    def generation(self) -> int:
        return self._generation

    def fetch(self, selection: GroupSelection,
              days_ahead: int = 30) -> Optional[List[DaySchedule]]:
        """
        Fetch, parse and build the schedule for a selection.

        Any error raised by the client, parser or builder propagates with
        the previous schedule kept. The loading flag is cleared whenever
        this call is still the current generation.

        Args:
            selection: Groups to fetch
            days_ahead: Number of days the feed should cover (default: 30)

        Returns:
            The published schedule, or None if a newer fetch superseded
            this one

        Raises:
            RetrievalFailed: If retrieval fails for the current generation;
                the previous schedule stays published
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._set_loading(True)
        logger.info(f"Starting schedule fetch #{generation} for {len(selection)} groups")

        try:
            try:
                payload = self.client.fetch_calendar(selection.group_ids, days_ahead)
            except RetrievalFailed as e:
                with self._lock:
                    if generation != self._generation:
                        logger.warning(f"Ignoring failure of superseded fetch #{generation}: {e}")
                        return None
                logger.error(f"Schedule fetch #{generation} failed: {e}")
                raise

            result = self.parser.parse(payload)
            schedule = self.builder.build(result.buckets)

            with self._lock:
                if generation != self._generation:
                    logger.info(f"Discarding result of superseded fetch #{generation}")
                    return None
                self._schedule = schedule
                self._last_errors = result.errors
        finally:
            with self._lock:
                if generation == self._generation:
                    self._set_loading(False)

        logger.info(
            f"Published schedule #{generation}: {len(schedule)} days, "
            f"{result.event_count} events"
        )
        if self.on_publish:
            self.on_publish(schedule)
        return schedule

    def _set_loading(self, value: bool) -> None:
        if self._is_loading == value:
            return
        self._is_loading = value
        if self.on_loading_changed:
            self.on_loading_changed(value)
