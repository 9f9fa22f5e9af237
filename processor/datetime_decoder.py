"""Decoder for DTSTART/DTEND field values."""
import logging
import re
from datetime import datetime, tzinfo
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from processor.errors import MalformedTimestamp

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'Europe/Kyiv'


class DateTimeDecoder:
    """Decodes calendar timestamp fields into timezone-aware datetimes."""

    TZID_PARAM = 'TZID='
    TIMESTAMP_FORMAT = '%Y%m%dT%H%M%S'
    TIMESTAMP_PATTERN = re.compile(r'\d{8}T\d{6}')

    def __init__(self, default_timezone: str = DEFAULT_TIMEZONE):
        """
        Initialize the decoder.

        Args:
            default_timezone: IANA zone used for values without a TZID
                parameter and for unrecognized TZID values
        """
        self.default_timezone = ZoneInfo(default_timezone)
        self._zones: Dict[str, tzinfo] = {}

    def decode(
        self, field: str, line_number: Optional[int] = None
    ) -> Tuple[Optional[datetime], List[MalformedTimestamp]]:
        """
        Decode a timestamp field.

        Accepts either a bare value (20240110T090000) or a value qualified
        with parameters (TZID=Europe/Kyiv:20240110T090000,
        VALUE=DATE-TIME:20240110T090000).

        Args:
            field: Field text following DTSTART/DTEND and its separator
            line_number: Source line, attached to any decode error

        Returns:
            Tuple of (timezone-aware datetime or None, list of decode errors)
        """
        try:
            return self.parse_field(field, line_number), []
        except MalformedTimestamp as e:
            return None, [e]

    def parse_field(self, field: str, line_number: Optional[int] = None) -> datetime:
        """
        Decode a timestamp field, raising on malformed values.

        Args:
            field: Field text following DTSTART/DTEND and its separator
            line_number: Source line, attached to any error raised

        Returns:
            Timezone-aware datetime

        Raises:
            MalformedTimestamp: If the value does not match yyyyMMdd'T'HHmmss
        """
        field = field.rstrip('\r')
        value = field
        zone = self.default_timezone

        tzid_index = field.find(self.TZID_PARAM)
        if tzid_index != -1:
            tzid_start = tzid_index + len(self.TZID_PARAM)
            colon_index = field.find(':', tzid_start)
            if colon_index != -1:
                zone = self.resolve_timezone(field[tzid_start:colon_index])
                value = field[colon_index + 1:]
        else:
            # Parameters without a zone, e.g. VALUE=DATE-TIME:20240110T090000
            colon_index = field.rfind(':')
            if colon_index != -1 and '=' in field[:colon_index]:
                value = field[colon_index + 1:]

        if not self.TIMESTAMP_PATTERN.fullmatch(value):
            raise MalformedTimestamp(field, line_number)

        try:
            naive = datetime.strptime(value, self.TIMESTAMP_FORMAT)
        except ValueError as e:
            # Digits in the right shape but out of range, e.g. month 13
            raise MalformedTimestamp(field, line_number) from e

        return naive.replace(tzinfo=zone)

    def resolve_timezone(self, tzid: str) -> tzinfo:
        """
        Resolve a zone identifier, falling back to the default zone.

        Args:
            tzid: IANA zone identifier from a TZID parameter

        Returns:
            Resolved zone, or the default zone if tzid is not recognized
        """
        tzid = tzid.strip().strip('"')
        if tzid in self._zones:
            return self._zones[tzid]

        try:
            zone = ZoneInfo(tzid)
        except (ZoneInfoNotFoundError, ValueError):
            logger.debug(
                f"Unrecognized timezone '{tzid}', using {self.default_timezone}"
            )
            zone = self.default_timezone

        self._zones[tzid] = zone
        return zone
