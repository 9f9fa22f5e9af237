"""Data models for calendar parsing and schedule building."""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, FrozenSet, Iterable, List, Optional

from processor.errors import CalendarParseError


def _new_event_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Event:
    """Single calendar entry parsed from a VEVENT block."""
    title: str = ''
    location: str = ''
    description: str = ''
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    event_id: str = field(default_factory=_new_event_id)


@dataclass
class DaySchedule:
    """Events of one calendar day, in display order."""
    label: str
    day: date
    events: List[Event]


@dataclass
class ParseResult:
    """Day buckets produced by the parser plus per-record errors."""
    buckets: Dict[str, List[Event]] = field(default_factory=dict)
    errors: List[CalendarParseError] = field(default_factory=list)

    @property
    def event_count(self) -> int:
        return sum(len(events) for events in self.buckets.values())


@dataclass
class PublishResult:
    """Result of publishing a schedule to storage."""
    written: int
    deleted: int
    errors: List[str]


@dataclass(frozen=True)
class GroupSelection:
    """Set of selected group identifiers."""
    group_ids: FrozenSet[int] = frozenset()

    @classmethod
    def of(cls, group_ids: Iterable[int]) -> 'GroupSelection':
        return cls(frozenset(int(group_id) for group_id in group_ids))

    @classmethod
    def from_string(cls, value: str) -> 'GroupSelection':
        """
        Parse a comma-joined list of group ids.

        Items that are not integers are skipped, matching how the
        persisted selection has always been read back.

        Args:
            value: String such as "12,7,31"

        Returns:
            GroupSelection with the parsed ids
        """
        ids = set()
        for item in (value or '').split(','):
            try:
                ids.add(int(item.strip()))
            except ValueError:
                continue
        return cls(frozenset(ids))

    def to_string(self) -> str:
        return ','.join(str(group_id) for group_id in self.sorted_ids())

    def sorted_ids(self) -> List[int]:
        return sorted(self.group_ids)

    def with_group(self, group_id: int) -> 'GroupSelection':
        return GroupSelection(self.group_ids | {group_id})

    def without_group(self, group_id: int) -> 'GroupSelection':
        return GroupSelection(self.group_ids - {group_id})

    def toggled(self, group_id: int) -> 'GroupSelection':
        if group_id in self.group_ids:
            return self.without_group(group_id)
        return self.with_group(group_id)

    def __len__(self) -> int:
        return len(self.group_ids)

    def __contains__(self, group_id: object) -> bool:
        return group_id in self.group_ids
