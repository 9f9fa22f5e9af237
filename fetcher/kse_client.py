"""HTTP client for the KSE schedule calendar feed."""
import logging
import time
from datetime import date, timedelta
from typing import Dict, Iterable, Optional

import requests

from processor.errors import RetrievalFailed, SelectionTooLarge

logger = logging.getLogger(__name__)


class KSEScheduleClient:
    """Client downloading the iCalendar feed for a set of groups."""

    BASE_URL = "https://schedule.kse.ua/uk/index/ical"
    MAX_GROUPS = 20
    DATE_FORMAT = '%d.%m.%Y'

    def __init__(self, base_url: Optional[str] = None, timeout: int = 30,
                 max_retries: int = 3, base_delay: float = 1):
        """
        Initialize the schedule client.

        Args:
            base_url: Calendar endpoint (default: BASE_URL)
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Number of attempts before giving up (default: 3)
            base_delay: First retry delay in seconds, doubled per attempt
        """
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay

    def build_params(self, group_ids: Iterable[int], days_ahead: int = 30,
                     today: Optional[date] = None) -> Dict[str, str]:
        """
        Build the query parameters for a calendar request.

        Args:
            group_ids: Selected group identifiers
            days_ahead: Number of days the feed should cover (default: 30)
            today: Start date (default: current date)

        Returns:
            Dict with id_grp and date_end parameters
        """
        today = today or date.today()
        end_date = today + timedelta(days=days_ahead)
        return {
            'id_grp': ','.join(str(group_id) for group_id in sorted(group_ids)),
            'date_end': end_date.strftime(self.DATE_FORMAT)
        }

    def fetch_calendar(self, group_ids: Iterable[int],
                       days_ahead: int = 30) -> bytes:
        """
        Fetch the calendar payload with retry logic.

        Args:
            group_ids: Selected group identifiers
            days_ahead: Number of days the feed should cover (default: 30)

        Returns:
            Raw calendar payload

        Raises:
            SelectionTooLarge: If more than MAX_GROUPS groups are selected
            RetrievalFailed: If all retry attempts fail
        """
        group_ids = list(group_ids)
        if len(group_ids) > self.MAX_GROUPS:
            raise SelectionTooLarge(len(group_ids), self.MAX_GROUPS)

        params = self.build_params(group_ids, days_ahead)
        logger.info(
            f"Fetching calendar for groups {params['id_grp'] or '(none)'} "
            f"until {params['date_end']}"
        )

        for attempt in range(self.max_retries):
            try:
                logger.info(f"Fetching calendar (attempt {attempt + 1}/{self.max_retries})")
                response = requests.get(
                    self.base_url,
                    params=params,
                    timeout=self.timeout
                )
                response.raise_for_status()
                logger.info(f"Downloaded {len(response.content)} bytes of calendar data")
                return response.content

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise RetrievalFailed(f"Failed to download the schedule: {e}") from e

        raise RetrievalFailed("Failed to download the schedule: no attempts made")
