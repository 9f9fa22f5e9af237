"""Unit tests for ScheduleBuilder."""
from datetime import date, datetime
from zoneinfo import ZoneInfo

from processor.calendar_parser import CalendarRecordParser, format_day_label
from processor.models import Event
from processor.schedule_builder import ScheduleBuilder

KYIV = ZoneInfo('Europe/Kyiv')


def make_event(title: str, *args) -> Event:
    return Event(title=title, start=datetime(*args, tzinfo=KYIV))


def bucket(*events: Event) -> dict:
    buckets = {}
    for event in events:
        buckets.setdefault(format_day_label(event.start), []).append(event)
    return buckets


class TestScheduleBuilder:
    """Test cases for ScheduleBuilder class."""

    def test_build_empty(self):
        """Test that no buckets give an empty schedule."""
        assert ScheduleBuilder().build({}) == []

    def test_build_orders_days_ascending(self):
        """Test that days are sorted regardless of bucket order."""
        buckets = bucket(
            make_event('Fri', 2024, 1, 12, 9),
            make_event('Wed', 2024, 1, 10, 9),
            make_event('Thu', 2024, 1, 11, 9),
        )

        schedule = ScheduleBuilder().build(buckets)

        assert [day.label for day in schedule] == [
            'Wednesday, Jan 10', 'Thursday, Jan 11', 'Friday, Jan 12'
        ]
        assert [day.day for day in schedule] == [
            date(2024, 1, 10), date(2024, 1, 11), date(2024, 1, 12)
        ]

    def test_build_orders_across_year_boundary(self):
        """Test that ordering uses the event instant, not the yearless label."""
        buckets = bucket(
            make_event('New year', 2025, 1, 2, 9),
            make_event('Old year', 2024, 12, 30, 9),
        )

        schedule = ScheduleBuilder().build(buckets)

        assert [day.events[0].title for day in schedule] == ['Old year', 'New year']

    def test_adjacent_days_strictly_increase(self):
        """Test the ordering invariant over a parsed feed."""
        lines = ['BEGIN:VCALENDAR']
        for day in (20, 3, 15, 3, 28, 9):
            lines += [
                'BEGIN:VEVENT',
                f'SUMMARY:Day {day}',
                f'DTSTART:202402{day:02d}T100000',
                'END:VEVENT',
            ]
        lines.append('END:VCALENDAR')
        result = CalendarRecordParser().parse('\n'.join(lines))

        schedule = ScheduleBuilder().build(result.buckets)

        assert len(schedule) == 5
        for first, second in zip(schedule, schedule[1:]):
            assert first.day < second.day

    def test_build_keeps_feed_order_within_day(self):
        """Test that events of a day are not reordered by default."""
        buckets = bucket(
            make_event('Late', 2024, 1, 10, 15),
            make_event('Early', 2024, 1, 10, 9),
        )

        schedule = ScheduleBuilder().build(buckets)

        assert [e.title for e in schedule[0].events] == ['Late', 'Early']

    def test_build_sort_within_day(self):
        """Test optional chronological ordering inside a day."""
        buckets = bucket(
            make_event('Late', 2024, 1, 10, 15),
            make_event('Early', 2024, 1, 10, 9),
            make_event('Noon', 2024, 1, 10, 12),
        )

        schedule = ScheduleBuilder(sort_within_day=True).build(buckets)

        assert [e.title for e in schedule[0].events] == ['Early', 'Noon', 'Late']

    def test_build_does_not_mutate_buckets(self):
        """Test that input lists are left untouched."""
        buckets = bucket(
            make_event('Late', 2024, 1, 10, 15),
            make_event('Early', 2024, 1, 10, 9),
        )

        ScheduleBuilder(sort_within_day=True).build(buckets)

        assert [e.title for e in buckets['Wednesday, Jan 10']] == ['Late', 'Early']

    def test_build_falls_back_to_label(self):
        """Test that a bucket without start instants uses its label."""
        buckets = {
            'Friday, Jan 12': [Event(title='Undated')],
            'Wednesday, Jan 10': [make_event('Dated', 2024, 1, 10, 9)],
        }

        schedule = ScheduleBuilder().build(buckets)

        fallback = next(day for day in schedule if day.label == 'Friday, Jan 12')
        assert (fallback.day.month, fallback.day.day) == (1, 12)

    def test_build_unparseable_label_sorts_last(self):
        """Test that an undatable bucket is placed after dated ones."""
        buckets = {
            'Someday soon': [Event(title='Mystery')],
            'Thursday, Jan 11': [make_event('Thu', 2024, 1, 11, 9)],
            'Wednesday, Jan 10': [make_event('Wed', 2024, 1, 10, 9)],
        }

        schedule = ScheduleBuilder().build(buckets)

        assert [day.label for day in schedule] == [
            'Wednesday, Jan 10', 'Thursday, Jan 11', 'Someday soon'
        ]
        assert schedule[-1].day == date.max

    def test_build_uses_builder_timezone(self):
        """Test that the day is computed in the configured zone."""
        event = Event(title='Late', start=datetime(2024, 1, 10, 23, 30, tzinfo=ZoneInfo('UTC')))

        kyiv_schedule = ScheduleBuilder().build({'Thursday, Jan 11': [event]})
        utc_schedule = ScheduleBuilder(timezone='UTC').build({'Wednesday, Jan 10': [event]})

        assert kyiv_schedule[0].day == date(2024, 1, 11)
        assert utc_schedule[0].day == date(2024, 1, 10)
