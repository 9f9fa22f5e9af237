"""DynamoDB store holding the most recently published schedule."""
import logging
from datetime import date, datetime
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from processor.models import DaySchedule, Event, PublishResult

logger = logging.getLogger(__name__)


class DynamoDBScheduleStore:
    """Publishes schedules to DynamoDB, replacing the previous one wholesale."""

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table
            region_name: AWS region (default: from the environment)
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBScheduleStore for table: {table_name}")

    def publish(self, schedule: List[DaySchedule]) -> PublishResult:
        """
        Replace the stored schedule with a new one.

        New items are written first, then every item of the previous
        schedule is deleted. If any write batch fails, nothing is deleted
        and the previous schedule stays in the table alongside whatever was
        written.

        Args:
            schedule: Schedule to publish

        Returns:
            PublishResult with counts of written and deleted items
        """
        errors: List[str] = []
        existing_ids = self._scan_event_ids()

        items = []
        for day_schedule in schedule:
            for position, event in enumerate(day_schedule.events):
                items.append(self._event_to_item(day_schedule, position, event))

        new_ids = {item['event_id'] for item in items}
        stale_ids = [event_id for event_id in existing_ids if event_id not in new_ids]

        logger.info(
            f"Publish plan: {len(items)} to write, {len(stale_ids)} to delete"
        )

        written = self._batch_write(items, errors)
        if errors:
            logger.error(
                f"Write failed for {len(errors)} batches, previous schedule kept "
                f"({len(stale_ids)} stale items not deleted)"
            )
            deleted = 0
        else:
            deleted = self._batch_delete(stale_ids, errors)

        logger.info(f"Publish complete: {written} written, {deleted} deleted")
        return PublishResult(written=written, deleted=deleted, errors=errors)

    def load_schedule(self) -> List[DaySchedule]:
        """
        Read the stored schedule back.

        Returns:
            List of DaySchedule ordered by day, events by stored position
        """
        days: Dict[date, DaySchedule] = {}
        positioned: Dict[date, List] = {}

        for item in self._scan_items():
            try:
                day = date.fromisoformat(item['day'])
                event = self._item_to_event(item)
                position = int(item['position'])
            except (KeyError, ValueError) as e:
                logger.warning(f"Failed to convert item to Event: {e}")
                continue

            if day not in days:
                days[day] = DaySchedule(label=item['day_label'], day=day, events=[])
                positioned[day] = []
            positioned[day].append((position, event))

        schedule = []
        for day in sorted(days):
            day_schedule = days[day]
            day_schedule.events = [
                event for _, event in sorted(positioned[day], key=lambda pair: pair[0])
            ]
            schedule.append(day_schedule)

        logger.info(f"Loaded schedule with {len(schedule)} days from DynamoDB")
        return schedule

    def _scan_items(self) -> List[dict]:
        """
        Scan the whole table, following pagination.

        Raises:
            ClientError: If the scan fails
        """
        try:
            response = self.table.scan()
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

            return items

        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

    def _scan_event_ids(self) -> List[str]:
        return [item['event_id'] for item in self._scan_items() if 'event_id' in item]

    def _batch_write(self, items: List[dict], errors: List[str]) -> int:
        if not items:
            return 0

        success_count = 0
        for i in range(0, len(items), self.BATCH_SIZE):
            batch = items[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for item in batch:
                        writer.put_item(Item=item)
                success_count += len(batch)

            except ClientError as e:
                error_msg = f"Error writing batch {i // self.BATCH_SIZE + 1}: {e}"
                logger.error(error_msg)
                errors.append(error_msg)
                continue

        return success_count

    def _batch_delete(self, event_ids: List[str], errors: List[str]) -> int:
        if not event_ids:
            return 0

        success_count = 0
        for i in range(0, len(event_ids), self.BATCH_SIZE):
            batch = event_ids[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for event_id in batch:
                        writer.delete_item(Key={'event_id': event_id})
                success_count += len(batch)

            except ClientError as e:
                error_msg = f"Error deleting batch {i // self.BATCH_SIZE + 1}: {e}"
                logger.error(error_msg)
                errors.append(error_msg)
                continue

        return success_count

    def _event_to_item(self, day_schedule: DaySchedule, position: int,
                       event: Event) -> dict:
        item = {
            'event_id': event.event_id,
            'day_label': day_schedule.label,
            'day': day_schedule.day.isoformat(),
            'position': position,
            'title': event.title,
            'location': event.location,
            'description': event.description,
            'start': event.start.isoformat()
        }

        # Add optional fields if present
        if event.end is not None:
            item['end'] = event.end.isoformat()

        return item

    def _item_to_event(self, item: dict) -> Event:
        end = item.get('end')
        return Event(
            title=item['title'],
            location=item.get('location', ''),
            description=item.get('description', ''),
            start=datetime.fromisoformat(item['start']),
            end=datetime.fromisoformat(end) if end else None,
            event_id=item['event_id']
        )
